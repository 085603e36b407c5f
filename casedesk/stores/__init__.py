"""
Stores Package
==============

Persistence ports and their SQLAlchemy implementations.
"""

from .base import (
    AccessStore, CaseFilters, CaseScope, CaseStore, DocumentStore, EventLog, MessageStore, UserStore,
)
from .sql import (
    SqlAccessStore, SqlCaseStore, SqlDocumentStore, SqlEventLog, SqlMessageStore, SqlUserStore,
)

__all__ = [
    # Ports
    "UserStore", "CaseStore", "AccessStore", "DocumentStore", "MessageStore", "EventLog", "CaseFilters", "CaseScope",
    # SQLAlchemy
    "SqlUserStore", "SqlCaseStore", "SqlAccessStore", "SqlDocumentStore", "SqlMessageStore", "SqlEventLog",
]
