"""
JSON-based persistence adapter.

Each collection (users, packages, contacts) is a top-level JSON array kept in
its own file. Callers load the whole array, mutate it in memory and save the
whole array back. Nothing serialises that cycle: two writers that read the
same snapshot race and the last save wins.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Protocol
import copy
import json
import logging
import os
import secrets

logger = logging.getLogger(__name__)

USERS = "users"
PACKAGES = "packages"
CONTACTS = "contacts"

Seed = Callable[[], list]


class RecordStore(Protocol):
    """Load-all / save-all contract shared by every collection."""

    def read(self, collection: str) -> list[dict]:
        ...

    def write(self, collection: str, records: list[dict]) -> None:
        ...


class JsonFileStore:
    """One ``<collection>.json`` file per collection under ``root``."""

    def __init__(self, root: Path | str, seeds: Mapping[str, Seed] | None = None) -> None:
        self.root = Path(root)
        self._seeds = dict(seeds or {})

    def path_for(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def _ensure(self, collection: str) -> Path:
        path = self.path_for(collection)
        if not path.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            seed = self._seeds.get(collection)
            self._dump(path, seed() if seed else [])
            logger.info("Initialised %s with %s", path.name, "seed data" if seed else "an empty list")
        return path

    def read(self, collection: str) -> list[dict]:
        try:
            path = self._ensure(collection)
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s collection, treating it as empty: %s", collection, exc)
            return []
        if not isinstance(data, list):
            logger.warning("%s collection is not a JSON array, treating it as empty", collection)
            return []
        return data

    def write(self, collection: str, records: list[dict]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._dump(self.path_for(collection), records)

    def _dump(self, path: Path, records: list) -> None:
        # write next to the target and rename so readers never see half a file
        tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
        try:
            tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        finally:
            if tmp.exists():
                tmp.unlink()


class MemoryStore:
    """In-memory stand-in for JsonFileStore used by tests."""

    def __init__(self, seeds: Mapping[str, Seed] | None = None) -> None:
        self._seeds = dict(seeds or {})
        self._data: dict[str, list[dict]] = {}

    def read(self, collection: str) -> list[dict]:
        if collection not in self._data:
            seed = self._seeds.get(collection)
            self._data[collection] = seed() if seed else []
        return copy.deepcopy(self._data[collection])

    def write(self, collection: str, records: list[dict]) -> None:
        self._data[collection] = copy.deepcopy(list(records))
