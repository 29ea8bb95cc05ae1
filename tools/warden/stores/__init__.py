"""User store adapters.

    UserStore          abstract contract
    InMemoryUserStore  dict-backed, for tests and ephemeral use
    SQLiteUserStore    file-backed with a UNIQUE email constraint
"""

from .base import UserRecord, UserStore
from .memory import InMemoryUserStore
from .sqlite import SQLiteUserStore

__all__ = ["UserRecord", "UserStore", "InMemoryUserStore", "SQLiteUserStore"]
