"""
Create an admin account, or promote an existing one.

Usage:
    python create_admin.py --email admin@refuge.fr --firstname Ada --lastname Admin
    python create_admin.py --email someone@refuge.fr --promote
"""

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError
from sqlmodel import Session

from db import create_db_and_tables, engine
from errors import AppError, NotFoundError
from schemas import RegisterData
from services import users as user_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("create_admin")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--firstname", default="Admin")
    parser.add_argument("--lastname", default="Admin")
    parser.add_argument("--phone", default=None)
    parser.add_argument("--password", help="prompted for when omitted")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="only promote an existing account, never create one",
    )
    return parser


def create_or_promote(session: Session, args: argparse.Namespace) -> str:
    user = user_service.get_by_email(session, args.email)
    if user is not None:
        if user.role == "admin":
            return f"{user.email} is already an admin"
        user_service.update_user(session, user, {"role": "admin"})
        return f"{user.email} promoted to admin"

    if args.promote:
        raise NotFoundError(f"No account found for {args.email}")

    password = args.password or getpass.getpass("Password: ")
    data = RegisterData(
        firstname=args.firstname,
        lastname=args.lastname,
        email=args.email,
        phone=args.phone,
        password=password,
    )
    user = user_service.register(session, data, role="admin")
    return f"Admin account {user.email} created (id {user.id})"


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    create_db_and_tables()
    with Session(engine) as session:
        try:
            logger.info(create_or_promote(session, args))
        except AppError as exc:
            logger.error(exc.message)
            return 1
        except ValidationError as exc:
            logger.error(f"Invalid account data: {exc}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
