"""
Create a user (e.g. first admin). Run from project root:
  python -m smart_city.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m smart_city.scripts.create_user admin@smartcity.com 'Admin123!' Ada Admin ADMIN
"""
import argparse
import sys

from pydantic import ValidationError

from smart_city.core.config import get_settings
from smart_city.core.database import SessionLocal
from smart_city.core.roles import ROLE_CITIZEN, ROLE_VALUES
from smart_city.core.security import hash_password
from smart_city.models import User
from smart_city.models.user import default_preferences
from smart_city.schemas.auth import RegisterRequest


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Smart City user without the API.")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (8-128 chars, mixed case, digit, symbol)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("role", nargs="?", default=ROLE_CITIZEN, choices=sorted(ROLE_VALUES))
    args = parser.parse_args(argv)

    try:
        data = RegisterRequest(
            email=args.email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=args.role,
        )
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            print(f"{field}: {err['msg']}", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == data.email).first()
        if existing:
            print(f"User '{data.email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            email=data.email,
            password_hash=hash_password(data.password, settings.BCRYPT_ROUNDS),
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            is_active=True,
            preferences=default_preferences(),
        )
        db.add(user)
        db.commit()
        print(f"Created user '{data.email}' with role '{data.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
