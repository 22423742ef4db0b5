"""
Reference "user" entity backed by an in-memory store.

An account lives in two tables: ``user`` (uid, mail, account name, status, password
hash) and ``profile`` (first name, last name, mobile, stored under their profile
field aliases). A user needs a mail address or a mobile number to be created, and
can be located by uid, mail, or mobile.

Examples
--------
>>> store = UserStore()
>>> account = UserEntity(store=store).set("mail", "a@b.com").create()
>>> account.mail, account.name
('a@b.com', 'Guest user')
>>> UserEntity(store=store).context("mail", "a@b.com").get().uid == account.uid
True
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import string
from typing import Any

from pydantic import BaseModel, Field

from ..core.constants import GUEST_NAME
from ..core.descriptors import declare
from ..core.entity import Entity
from ..core.errors import RecordNotFoundError
from ..core.registry import register_entity_type

__all__ = [
    "ProfileRecord",
    "UserRecord",
    "UserStore",
    "UserEntity",
]

logger = logging.getLogger(__name__)

_PASSWORD_ALPHABET = string.ascii_uppercase


class ProfileRecord(BaseModel):
    """Profile fields keyed by storage alias (e.g. ``field_user_mobile``)."""

    uid: int
    attributes: dict[str, Any] = Field(default_factory=dict)


class UserRecord(BaseModel):
    """
    A stored account.

    Attributes:
        uid (int): Store-assigned identifier.
        name (str): Unique account name.
        mail (str): Mail address, or ``<mobile>@mobile`` for mobile-only accounts.
        status (int): 1 when active.
        password_hash (str): SHA-256 of the generated password.
        profile (ProfileRecord | None): Profile attached on fetch/create.
    """

    uid: int
    name: str
    mail: str
    status: int = 1
    password_hash: str = ""
    profile: ProfileRecord | None = None


class UserStore:
    """Minimal in-memory backing store for UserEntity."""

    def __init__(self) -> None:
        self._users: dict[int, UserRecord] = {}
        self._profiles: dict[int, ProfileRecord] = {}
        self._next_uid = 1

    def add(self, *, name: str, mail: str, password_hash: str) -> UserRecord:
        record = UserRecord(
            uid=self._next_uid, name=name, mail=mail, password_hash=password_hash
        )
        self._users[record.uid] = record
        self._next_uid += 1
        return record

    def save(self, record: UserRecord) -> None:
        self._users[record.uid] = record.model_copy(update={"profile": None})

    def get(self, uid: int) -> UserRecord | None:
        record = self._users.get(uid)
        return record.model_copy() if record is not None else None

    def name_taken(self, name: str) -> bool:
        return any(u.name == name for u in self._users.values())

    def find_by_mail_or_mobile(self, value: str) -> UserRecord | None:
        for record in self._users.values():
            if record.mail == value:
                return record.model_copy()
        for uid, profile in self._profiles.items():
            if profile.attributes.get("field_user_mobile") == value:
                return self.get(uid)
        return None

    def profile(self, uid: int) -> ProfileRecord:
        profile = self._profiles.get(uid)
        return profile.model_copy(deep=True) if profile else ProfileRecord(uid=uid)

    def save_profile(self, profile: ProfileRecord) -> None:
        self._profiles[profile.uid] = profile.model_copy(deep=True)

    def remove(self, uid: int) -> bool:
        self._profiles.pop(uid, None)
        return self._users.pop(uid, None) is not None

    def __len__(self) -> int:
        return len(self._users)


def _hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


@register_entity_type
class UserEntity(Entity):
    """Accounts with a profile; create needs a mail address or a mobile number."""

    entity_name = "user"
    fields = (
        declare(
            "uid",
            r"""
            The user's user ID.

            @Api\Table("user")
            @Api\Column(name="uid", type="integer", required="false")
            @Api\Validate(regex="[0-9]+")
            @Api\Contextual()
            """,
        ),
        declare(
            "mail",
            r"""
            The user's email address.

            @Api\Table("user")
            @Api\Column(name="mail", type="varchar", length="255", required="false")
            @Api\Validate(function="valid_email_address")
            @Api\OneInGroup(name="social", on="create")
            @Api\Contextual()
            """,
        ),
        declare(
            "mobile",
            r"""
            The user's mobile phone number.

            @Api\Table("profile")
            @Api\Column(name="mobile", real="field_user_mobile", type="varchar", length="255")
            @Api\OneInGroup(name="social", on="create")
            @Api\Validate(function="valid_mobile_number")
            @Api\Contextual()
            """,
        ),
        declare(
            "name",
            r"""
            The user's first name.

            @Api\Table("profile")
            @Api\Column(name="name", real="field_user_first_name", type="varchar", length="255")
            @Api\Validate(regex="[A-Za-z'\- ]+")
            """,
        ),
        declare(
            "last_name",
            r"""
            The user's last name.

            @Api\Table("profile")
            @Api\Column(name="last_name", real="field_user_last_name", type="varchar", length="255")
            @Api\Validate(regex="[A-Za-z'\- ]+")
            """,
        ),
    )

    def __init__(self, *, store: UserStore, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.store = store

    def lookup(self, context: dict[str, Any]) -> UserRecord | None:
        """Locate an account by uid, else by mail or mobile."""
        found = self.require_context(context)
        if "uid" in found:
            return self.store.get(int(found["uid"]))
        key = found.get("mail") or found.get("mobile")
        return self.store.find_by_mail_or_mobile(str(key)) if key else None

    def _unique_name(self, base: str) -> str:
        name = base
        suffix = 0
        while self.store.name_taken(name):
            suffix += 1
            name = f"{base}-{suffix}"
        return name

    def build(self, values: dict[str, Any]) -> UserRecord:
        first_name = values.get("name") or GUEST_NAME
        mobile = values.get("mobile")
        password = "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(6))

        account = self.store.add(
            name=self._unique_name(str(first_name)),
            mail=str(values.get("mail") or f"{mobile}@mobile"),
            password_hash=_hash_password(password),
        )
        profile = ProfileRecord(uid=account.uid)
        for alias, value in self.values_by_table(values).get("profile", {}).items():
            profile.attributes[alias] = value
        self.store.save_profile(profile)

        logger.info("Created user %s", account.uid)
        return account.model_copy(update={"profile": profile})

    def fetch(self, context: dict[str, Any]) -> UserRecord:
        account = self.lookup(context)
        if account is None:
            raise RecordNotFoundError(f"No user matches {context!r}")
        return account.model_copy(update={"profile": self.store.profile(account.uid)})

    def change(self, context: dict[str, Any], values: dict[str, Any]) -> UserRecord | None:
        account = self.lookup(context)
        if account is None:
            return None

        by_table = self.values_by_table(values)
        profile = self.store.profile(account.uid)
        if by_table.get("profile"):
            profile.attributes.update(by_table["profile"])
            self.store.save_profile(profile)
        user_values = {k: v for k, v in by_table.get("user", {}).items() if k != "uid"}
        if user_values:
            account = account.model_copy(update={k: str(v) for k, v in user_values.items()})
            self.store.save(account)

        return account.model_copy(update={"profile": profile})

    def delete(self, context: dict[str, Any]) -> bool:
        account = self.lookup(context)
        if account is None:
            return False
        return self.store.remove(account.uid)
