#!/usr/bin/env python3
"""
Add an admin user to users.json.

Usage:
  python scripts/create_user.py --username ops [--password s3cret]

Without --password a random one is generated and printed once.
Usernames are not required to be unique; login picks the first match.
"""
from __future__ import annotations

import argparse
import secrets
import sys

from courier.core.config import get_settings
from courier.core.security import hash_password
from courier.repositories.entities import UserRepository, default_seeds
from courier.repositories.json_storage import JsonFileStore


def gen_password(length: int = 16) -> str:
    return secrets.token_urlsafe(length)[:length]


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Create an admin user")
    ap.add_argument("--username", required=True, help="login name")
    ap.add_argument("--password", help="password (default: random)")
    ap.add_argument("--data-dir", help="override DATA_DIR")
    args = ap.parse_args(argv)

    settings = get_settings()
    username = (args.username or "").strip()
    if not username:
        raise SystemExit("Invalid username")
    store = JsonFileStore(args.data_dir or settings.data_dir, default_seeds(settings.admin_username, settings.admin_password))
    users = UserRepository(store)
    if users.get_by_username(username):
        print(f"Warning: a user named '{username}' already exists; the first one in users.json wins at login.")

    password = (args.password or "").strip() or gen_password()
    user = users.create(username, hash_password(password))
    print("OK: user created")
    print(f"  id: {user.id}")
    print(f"  username: {user.username}")
    if not args.password:
        print(f"  password: {password}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as exc:  # pragma: no cover - CLI use
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
