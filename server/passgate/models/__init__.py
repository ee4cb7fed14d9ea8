"""Database models exposed by the `passgate` Django app.

Credentials are durable; everything with a TTL lives in `EphemeralRecord`.
"""

from .credential import Credential
from .ephemeral import EphemeralRecord
from .user import User

__all__ = [
    "Credential",
    "EphemeralRecord",
    "User",
]
