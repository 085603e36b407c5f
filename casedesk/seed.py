"""
Demo data seeding.

Usage:
    python -m casedesk.seed
"""

import logging
from typing import List

from .auth import get_password_hash
from .db.models import UserRole
from .db.session import get_db_session, init_db
from .stores.sql import SqlUserStore

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "email": "lawyer@legal.com",
        "password": "lawyer123",
        "first_name": "John",
        "last_name": "Smith",
        "role": UserRole.LAWYER,
    },
    {
        "email": "client@example.com",
        "password": "client123",
        "first_name": "Jane",
        "last_name": "Doe",
        "role": UserRole.CLIENT,
    },
]


def seed_demo_users() -> List[str]:
    """Create the demo accounts that do not exist yet; returns the created emails."""
    created = []
    with get_db_session() as db:
        users = SqlUserStore(db)
        for demo in DEMO_USERS:
            if users.get_by_email(demo["email"]) is not None:
                continue
            users.create(
                email=demo["email"],
                password_hash=get_password_hash(demo["password"]),
                first_name=demo["first_name"],
                last_name=demo["last_name"],
                role=demo["role"],
            )
            created.append(demo["email"])

    if created:
        logger.info(f"Seeded demo users: {', '.join(created)}")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    seed_demo_users()
    print("Sample credentials:")
    for demo in DEMO_USERS:
        print(f"  {demo['role'].value.title()}: {demo['email']} / {demo['password']}")
