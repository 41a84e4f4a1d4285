"""
Generate a bcrypt hash for ADMIN_PASSWORD_HASH.

    eventreg-hash-password            # prompts twice
    eventreg-hash-password --rounds 12
"""

import argparse
import getpass
import sys

from eventreg.core.security import hash_password


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate ADMIN_PASSWORD_HASH for the admin login")
    parser.add_argument("--rounds", type=int, default=10, help="bcrypt cost factor (default: 10)")
    args = parser.parse_args(argv)

    password = getpass.getpass("Admin password: ")
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1
    if getpass.getpass("Repeat password: ") != password:
        print("Passwords do not match", file=sys.stderr)
        return 1

    try:
        hashed = hash_password(password, rounds=args.rounds)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 1

    print("\nAdd this to your .env file:")
    print(f"ADMIN_PASSWORD_HASH={hashed}")
    print("\nAlso set ADMIN_USERNAME and JWT_SECRET.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
