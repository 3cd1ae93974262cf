#!/usr/bin/env python3
"""
Print an ADMIN_PASSWORD_HASH line for the .env file.

    python scripts/generate_password_hash.py
"""
import getpass
import sys

from sitecms.utils.auth import hash_password


def main() -> int:
    password = getpass.getpass("Admin password: ")
    if not password:
        print("Password cannot be empty", file=sys.stderr)
        return 1
    if password != getpass.getpass("Confirm password: "):
        print("Passwords do not match", file=sys.stderr)
        return 1

    print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")
    print("Keep this value out of version control.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
