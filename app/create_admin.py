"""
Create an admin account, or grant the admin role to an existing user.

Usage:
    python -m app.create_admin admin@example.com
"""

import argparse
import getpass
import sys

from sqlalchemy.orm import Session

from app.auth import ADMIN_ROLE, register_user
from app.storage import SessionLocal, get_user_by_email, grant_role, init_db


def grant_admin(db: Session, email: str, password: str = None):
    """
    Grant the admin role to ``email``, creating the account first if needed.

    Raises:
        ValueError: the account does not exist and no password was given
    """
    user = get_user_by_email(db, email)
    if user is None:
        if not password:
            raise ValueError(f"No account for {email}; a password is required to create one")
        user = register_user(db, email, password)
    grant_role(db, user.id, ADMIN_ROLE)
    return user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("email")
    parser.add_argument("--create", action="store_true", help="prompt for a password and create the account if missing")
    args = parser.parse_args(argv)

    password = None
    if args.create:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Confirm Password: "):
            print("Passwords do not match.", file=sys.stderr)
            return 1
        if len(password) < 6:
            print("Password must be at least 6 characters.", file=sys.stderr)
            return 1

    init_db()
    with SessionLocal() as db:
        try:
            user = grant_admin(db, args.email, password)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 1
        print(f"{user.email} is now an admin.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
