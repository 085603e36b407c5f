"""
Case Messages
=============

Message thread attached to each case. Anyone who can read the case can read
and post; only the sender may edit or delete a message. A message on a case
the caller cannot reach is reported exactly like a missing one.
"""

import logging
from typing import Optional

from .auth import UserIdentity
from .authorization import AuthorizationEngine
from .results import Result, Success, invalid, not_found, not_owner
from .serializers import message_to_dict
from .stores.base import MessageStore

logger = logging.getLogger(__name__)

MESSAGE_NOT_FOUND = "Message not found"


class MessageFacade:
    """Case message operations for one request scope"""

    def __init__(self, engine: AuthorizationEngine, messages: MessageStore):
        self.engine = engine
        self.messages = messages

    def _readable_message(self, user: UserIdentity, message_id: str):
        message = self.messages.get(message_id)
        if message is None or not self.engine.can_access_case(user, message.case_id):
            return None
        return message

    def _own_message(self, user: UserIdentity, message_id: str, verb: str):
        message = self._readable_message(user, message_id)
        if message is None:
            return None, not_found(MESSAGE_NOT_FOUND)
        if message.sender_id != user.id:
            return None, not_owner(f"Only the sender can {verb} this message")
        return message, None

    def list_messages(self, user: UserIdentity, case_id: str, limit: int = 50, offset: int = 0) -> Result:
        """Thread of a case, oldest first; marks other senders' messages as read."""
        failure = self.engine.authorize_read(user, case_id)
        if failure:
            return failure

        with self.messages.transaction():
            unread = self.messages.count_unread(case_id, user.id)
            items, total = self.messages.list_for_case(case_id, offset, limit)
            self.messages.mark_read(case_id, user.id)

        return Success({
            "messages": [message_to_dict(m) for m in items],
            "pagination": {"limit": limit, "offset": offset, "total": total},
            "unread": unread,
        })

    def post_message(self, user: UserIdentity, case_id: str, content: str) -> Result:
        failure = self.engine.authorize_read(user, case_id)
        if failure:
            return failure

        content = (content or "").strip()
        if not content:
            return invalid("Message content is required")

        with self.messages.transaction():
            message = self.messages.create(case_id, user.id, content)

        logger.info(f"User {user.id} posted message {message.id} on case {case_id}")
        return Success(message_to_dict(message), "Message sent successfully", created=True)

    def get_message(self, user: UserIdentity, message_id: str) -> Result:
        message = self._readable_message(user, message_id)
        if message is None:
            return not_found(MESSAGE_NOT_FOUND)
        return Success(message_to_dict(message))

    def edit_message(self, user: UserIdentity, message_id: str, content: Optional[str]) -> Result:
        message, failure = self._own_message(user, message_id, "edit")
        if failure:
            return failure

        content = (content or "").strip()
        if not content:
            return invalid("Message content is required")

        with self.messages.transaction():
            message = self.messages.update_content(message.id, content)

        return Success(message_to_dict(message), "Message updated successfully")

    def delete_message(self, user: UserIdentity, message_id: str) -> Result:
        message, failure = self._own_message(user, message_id, "delete")
        if failure:
            return failure

        with self.messages.transaction():
            self.messages.delete(message.id)

        logger.info(f"User {user.id} deleted message {message.id}")
        return Success({"id": message.id}, "Message deleted successfully")
