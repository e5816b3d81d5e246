"""Create an administrator account, or promote an existing account to admin."""
from __future__ import annotations

import argparse
import getpass
import sys

from sqlalchemy import or_
from sqlalchemy.orm import Session

from inkwell.core.errors import InkwellError
from inkwell.db.session import SessionLocal
from inkwell.models import User
from inkwell.services import user_service

MIN_PASSWORD_LENGTH = 8


def ensure_admin(
    db: Session,
    *,
    email: str,
    username: str,
    password: str | None,
    display_name: str | None = None,
) -> tuple[User, bool]:
    """Promote the account matching ``email`` or ``username``, or create one.

    Returns:
        ``(user, created)``.
    """
    existing = (
        db.query(User)
        .filter(or_(User.email == email.strip().lower(), User.username == username.strip()))
        .first()
    )
    if existing is not None:
        user_service.set_role(db, existing, "admin")
        return existing, False

    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    user = user_service.create_user(
        db,
        email=email,
        username=username.strip(),
        password=password,
        display_name=(display_name or "").strip() or username.strip(),
        role="admin",
    )
    user.email_verified = True
    db.commit()
    db.refresh(user)
    return user, True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--username", required=True)
    parser.add_argument("--display-name", default=None)
    parser.add_argument(
        "--password",
        default=None,
        help="Password for a new account; prompted for when omitted.",
    )
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        exists = (
            db.query(User.id)
            .filter(or_(User.email == args.email.strip().lower(), User.username == args.username))
            .first()
        )
        password = args.password
        if exists is None and password is None:
            password = getpass.getpass("Admin password: ")
        user, created = ensure_admin(
            db,
            email=args.email,
            username=args.username,
            password=password,
            display_name=args.display_name,
        )
    except (InkwellError, ValueError) as exc:
        print(f"[create-admin] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    action = "Created" if created else "Promoted"
    print(f"[create-admin] {action} admin {user.username} <{user.email}>")
    return 0


if __name__ == "__main__":
    sys.exit(main())
