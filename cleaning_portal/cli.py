"""CLI for the cleaning portal: create tables, bootstrap admin and staff accounts."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys


def _read_password(given: str) -> str:
    password = given
    if not password:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match")
            sys.exit(1)

    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)
    return password


async def cmd_init_db(args):
    """Create all tables."""
    from cleaning_portal.db.engine import create_all, engine

    await create_all()
    await engine.dispose()
    print("Database tables created.")


async def _create_account(args, role: str):
    from cleaning_portal.db import crud
    from cleaning_portal.db.engine import async_session_factory, create_all, engine
    from cleaning_portal.services.auth import hash_password

    await create_all()
    password = _read_password(args.password)

    async with async_session_factory() as db:
        if await crud.get_user_by_email(db, args.email):
            print(f"User {args.email} already exists")
            sys.exit(1)

        user = await crud.create_user(
            db, args.email, hash_password(password), role=role,
            full_name=args.full_name or None,
        )
        if role == "admin":
            await crud.upsert_admin_details(db, user.id, admin_level=args.level)
        else:
            await crud.upsert_staff_details(
                db, user.id, employee_id=args.employee_id or None, hourly_rate=args.hourly_rate,
            )
    await engine.dispose()
    return user


async def cmd_create_admin(args):
    user = await _create_account(args, "admin")
    print(f"Admin user: {user.email} (id={user.id}, level={args.level})")


async def cmd_create_staff(args):
    user = await _create_account(args, "staff")
    print(f"Staff user: {user.email} (id={user.id})")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Cleaning portal CLI")
    subparsers = parser.add_subparsers(dest="command")

    # init-db
    subparsers.add_parser("init-db", help="Create database tables")

    # create-admin
    ca = subparsers.add_parser("create-admin", help="Create an admin user")
    ca.add_argument("--email", required=True, help="Admin email")
    ca.add_argument("--password", default="", help="Password (prompted if not given)")
    ca.add_argument("--full-name", default="", help="Full name")
    ca.add_argument("--level", default="super", choices=["super", "admin", "manager", "supervisor", "standard"],
                    help="Admin level (super and admin get every permission)")

    # create-staff
    cs = subparsers.add_parser("create-staff", help="Create a staff member")
    cs.add_argument("--email", required=True, help="Staff email")
    cs.add_argument("--password", default="", help="Password (prompted if not given)")
    cs.add_argument("--full-name", default="", help="Full name")
    cs.add_argument("--employee-id", default="", help="Employee id")
    cs.add_argument("--hourly-rate", type=float, default=None, help="Hourly pay rate")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "create-admin":
        asyncio.run(cmd_create_admin(args))
    elif args.command == "create-staff":
        asyncio.run(cmd_create_staff(args))


if __name__ == "__main__":
    main()
