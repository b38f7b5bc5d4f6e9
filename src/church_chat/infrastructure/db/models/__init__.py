"""Import all models so ``Base.metadata`` sees every table."""
from church_chat.infrastructure.db.models.account import AccountModel
from church_chat.infrastructure.db.models.message import MessageModel

__all__ = [
    "AccountModel",
    "MessageModel",
]
