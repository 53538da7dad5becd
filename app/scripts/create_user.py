"""
Create a user (e.g. first admin) or reset a password. Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [role]
  python -m app.scripts.create_user --reset-password EMAIL
Example:
  python -m app.scripts.create_user admin admin@example.com 'Str0ng!pass' admin
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import Database
from app.core.errors import ServiceError
from app.core.security import PasswordHasher, TokenManager
from app.repositories import UserRepository
from app.services.auth import AuthService


def _auth_service(database: Database) -> tuple[AuthService, UserRepository]:
    settings = get_settings()
    users = UserRepository(database)
    service = AuthService(
        TokenManager.from_settings(settings),
        PasswordHasher(settings.BCRYPT_COST),
        users,
    )
    return service, users


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user or reset a user's password.")
    parser.add_argument("username", nargs="?", help="3-50 chars: letters, digits, _ or -")
    parser.add_argument("email", nargs="?", help="Unique email")
    parser.add_argument("password", nargs="?", help="At least 8 chars with upper, lower, digit and symbol")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    parser.add_argument(
        "--reset-password",
        metavar="EMAIL",
        help="Replace the password of EMAIL with a generated one and print it",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    settings = get_settings()
    database = Database(
        settings.database_url,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
        max_attempts=settings.DB_MAX_CONNECT_ATTEMPTS,
    )
    service, users = _auth_service(database)
    try:
        if args.reset_password:
            user = users.find_by_email(args.reset_password.strip())
            if user is None:
                print(f"No user with email '{args.reset_password}'.", file=sys.stderr)
                return 1
            temporary = service.reset_password(user.id)
            print(f"New password for '{user.username}': {temporary}")
            return 0

        if not (args.username and args.email and args.password):
            parser.error("username, email and password are required")

        result = service.register(args.username, args.email, args.password, args.role)
        print(f"Created user '{result.user.username}' with role '{result.user.role}'.")
        return 0
    except ServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
