"""CLI entrypoints for portal operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

from sqlalchemy import func, select

from portal.core.passwords import MAX_PASSWORD_BYTES, password_fits
from portal.core.roles import Role
from portal.core.sessions import get_session_service
from portal.db.session import dispose_engine, get_session_factory
from portal.models.user import User
from portal.services.user_service import get_user_service, normalize_email


async def _run_create_admin(email: str, full_name: str, password: str) -> int:
    """Create an admin account, or promote and reset an existing one."""
    user_service = get_user_service()
    session_factory = get_session_factory()

    try:
        async with session_factory() as db_session:
            result = await db_session.execute(
                select(User.id).where(func.lower(User.email) == normalize_email(email))
            )
            existing_id = result.scalar_one_or_none()
            if existing_id is None:
                user = await user_service.create_user(
                    db_session,
                    email=email,
                    password=password,
                    full_name=full_name,
                    role=Role.ADMIN,
                )
                action = "created"
            else:
                user = await user_service.update_user(
                    db_session,
                    existing_id,
                    {
                        "full_name": full_name,
                        "password": password,
                        "role": Role.ADMIN,
                        "is_active": True,
                    },
                )
                action = "updated"
    finally:
        await dispose_engine()

    print(json.dumps({"action": action, "user_id": str(user.id), "email": user.email}))
    return 0


async def _run_purge_sessions() -> int:
    """Delete expired session rows."""
    session_service = get_session_service()
    session_factory = get_session_factory()

    try:
        async with session_factory() as db_session:
            removed = await session_service.purge_expired(db_session)
    finally:
        await dispose_engine()

    print(json.dumps({"purged_sessions": removed}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m portal.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    admin_parser = subcommands.add_parser("create-admin")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--full-name", required=True)
    admin_parser.add_argument(
        "--password",
        required=True,
        help="Initial password; an existing account with this email is reset to it.",
    )

    subcommands.add_parser("purge-sessions")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "create-admin":
        if len(args.password) < 8:
            parser.error("--password must be at least 8 characters")
        if not password_fits(args.password):
            parser.error(f"--password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return asyncio.run(
            _run_create_admin(email=args.email, full_name=args.full_name, password=args.password)
        )
    if args.command == "purge-sessions":
        return asyncio.run(_run_purge_sessions())
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
