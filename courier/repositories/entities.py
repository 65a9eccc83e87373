"""Typed repositories over the users, packages and contacts collections."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional, TypeVar
import logging

from pydantic import BaseModel, ValidationError

from courier.core.security import hash_password
from courier.domain.tracking import allocate_tracking_number, generate_tracking_number
from courier.repositories.json_storage import CONTACTS, PACKAGES, USERS, RecordStore
from courier.schemas import DEFAULT_STATUS, Contact, Package, User

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
M = TypeVar("M", bound=BaseModel)
_IDENTITY_FIELDS = ("id", "trackingNumber", "createdAt", "updatedAt")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601, UTC, millisecond precision, ``Z`` suffix."""
    value = value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def next_id(records: list[dict]) -> int:
    ids = [r["id"] for r in records if isinstance(r, dict) and isinstance(r.get("id"), int)]
    return max(ids) + 1 if ids else 1


def _find_index(records: list[dict], record_id: int) -> int:
    for idx, record in enumerate(records):
        if isinstance(record, dict) and record.get("id") == record_id:
            return idx
    return -1


def _rows(store: RecordStore, collection: str) -> list[dict]:
    return [record for record in store.read(collection) if isinstance(record, dict)]


def _load(model: type[M], record: dict, collection: str) -> Optional[M]:
    """Typed view of a stored record; a record missing required keys is skipped, not fatal."""
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        logger.warning(
            "Skipping malformed %s record id=%r (%d problems)", collection, record.get("id"), exc.error_count()
        )
        return None


class UserRepository:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        for record in _rows(self.store, USERS):
            if record.get("id") == user_id:
                return _load(User, record, USERS)
        return None

    def get_by_username(self, username: str) -> Optional[User]:
        """First usable match in file order; usernames are not unique."""
        for record in _rows(self.store, USERS):
            if record.get("username") == username:
                user = _load(User, record, USERS)
                if user is not None:
                    return user
        return None

    def create(self, username: str, password: str) -> User:
        users = self.store.read(USERS)
        record = {"id": next_id(users), "username": username, "password": password}
        users.append(record)
        self.store.write(USERS, users)
        return User.model_validate(record)

    def update_password(self, user_id: int, password: str) -> bool:
        users = self.store.read(USERS)
        idx = _find_index(users, user_id)
        if idx == -1:
            return False
        users[idx] = {**users[idx], "password": password}
        self.store.write(USERS, users)
        return True


class PackageRepository:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Clock = utcnow,
        tracking_generator: Callable[[], str] = generate_tracking_number,
    ) -> None:
        self.store = store
        self._clock = clock
        self._generate = tracking_generator

    def _next_timestamp(self, previous: str | None = None) -> str:
        now = self._clock()
        last = parse_timestamp(previous)
        # updatedAt must move forward even when two writes land in the same millisecond
        if last is not None and now <= last:
            now = last + timedelta(milliseconds=1)
        return format_timestamp(now)

    def get_by_id(self, package_id: int) -> Optional[Package]:
        for record in _rows(self.store, PACKAGES):
            if record.get("id") == package_id:
                return _load(Package, record, PACKAGES)
        return None

    def get_by_tracking_number(self, tracking_number: str) -> Optional[Package]:
        """Exact, case-sensitive match. Callers uppercase before calling."""
        for record in _rows(self.store, PACKAGES):
            if record.get("trackingNumber") == tracking_number:
                return _load(Package, record, PACKAGES)
        return None

    def get_all(self) -> list[Package]:
        return [p for p in (_load(Package, r, PACKAGES) for r in _rows(self.store, PACKAGES)) if p is not None]

    def create(self, data: Mapping, *, photo_for: Callable[[str], str] | None = None) -> Package:
        """Allocate id, tracking number and timestamps, then append.

        ``photo_for`` receives the new tracking number and returns the stored
        photo filename, so the record is written once with its photo.
        """
        packages = self.store.read(PACKAGES)
        tracking_number = allocate_tracking_number(
            (p.get("trackingNumber") for p in packages if isinstance(p, dict)), self._generate
        )
        now = self._next_timestamp()
        record = {key: value for key, value in dict(data).items() if key not in _IDENTITY_FIELDS}
        record.setdefault("status", DEFAULT_STATUS)
        record.setdefault("adminNotes", "")
        if photo_for is not None:
            record["photo"] = photo_for(tracking_number)
        record.update(
            {
                "id": next_id(packages),
                "trackingNumber": tracking_number,
                "createdAt": now,
                "updatedAt": now,
            }
        )
        packages.append(record)
        self.store.write(PACKAGES, packages)
        logger.info("Package %s created (id=%s)", tracking_number, record["id"])
        return Package.model_validate(record)

    def update(self, package_id: int, patch: Mapping) -> Optional[Package]:
        packages = self.store.read(PACKAGES)
        idx = _find_index(packages, package_id)
        if idx == -1:
            return None
        current = packages[idx]
        changes = {key: value for key, value in dict(patch).items() if key not in _IDENTITY_FIELDS}
        merged = {
            **current,
            **changes,
            "updatedAt": self._next_timestamp(current.get("updatedAt")),
        }
        package = _load(Package, merged, PACKAGES)
        if package is None:
            # a stored record that is still unusable after the patch is left as it was
            return None
        packages[idx] = merged
        self.store.write(PACKAGES, packages)
        logger.info("Package %s updated (%s)", current.get("trackingNumber"), ", ".join(sorted(changes)) or "no fields")
        return package

    def delete(self, package_id: int) -> bool:
        packages = self.store.read(PACKAGES)
        idx = _find_index(packages, package_id)
        if idx == -1:
            return False
        removed = packages.pop(idx)
        self.store.write(PACKAGES, packages)
        logger.info("Package %s deleted (id=%s)", removed.get("trackingNumber"), package_id)
        return True


class ContactRepository:
    def __init__(self, store: RecordStore, *, clock: Clock = utcnow) -> None:
        self.store = store
        self._clock = clock

    def create(self, data: Mapping) -> Contact:
        contacts = self.store.read(CONTACTS)
        record = {key: value for key, value in dict(data).items() if key not in ("id", "createdAt")}
        record.update({"id": next_id(contacts), "createdAt": format_timestamp(self._clock())})
        contacts.append(record)
        self.store.write(CONTACTS, contacts)
        return Contact.model_validate(record)

    def get_all(self) -> list[Contact]:
        return [c for c in (_load(Contact, r, CONTACTS) for r in _rows(self.store, CONTACTS)) if c is not None]


def default_seeds(admin_username: str, admin_password: str) -> dict:
    """First-boot contents: one admin user, no packages, no contacts."""
    return {
        USERS: lambda: [{"id": 1, "username": admin_username, "password": hash_password(admin_password)}],
        PACKAGES: list,
        CONTACTS: list,
    }


@dataclass
class Repositories:
    users: UserRepository
    packages: PackageRepository
    contacts: ContactRepository


def build_repositories(store: RecordStore, *, clock: Clock = utcnow) -> Repositories:
    return Repositories(
        users=UserRepository(store),
        packages=PackageRepository(store, clock=clock),
        contacts=ContactRepository(store, clock=clock),
    )
