"""Bundled entity types. Importing this package registers them."""

from .user import ProfileRecord, UserEntity, UserRecord, UserStore

__all__ = [
    "ProfileRecord",
    "UserEntity",
    "UserRecord",
    "UserStore",
]
