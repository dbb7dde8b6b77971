from __future__ import annotations

import argparse

from app.auth.security import create_access_token
from app.core.db import SessionLocal
from app.models.user import User
from app.services.user_accounts import normalize_email


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Issue a bearer token for an existing user.")
    parser.add_argument("--email", required=True, help="Email of the user the token is issued for")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with SessionLocal() as db:
        user = db.query(User).filter(User.email == normalize_email(args.email)).first()
        if user is None:
            raise SystemExit(f"User not found: {args.email}")
        if not user.is_active:
            raise SystemExit(f"User is inactive: {args.email}")
        token = create_access_token(str(user.id), user.role, expires_minutes=args.minutes)

    print(token)


if __name__ == "__main__":
    main()
