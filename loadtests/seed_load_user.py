"""Create or reset the account used by the Locust scenarios."""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import func, select

from portal.core.roles import Role
from portal.db.session import dispose_engine, get_session_factory
from portal.models.user import User
from portal.services.user_service import get_user_service, normalize_email


async def seed_user(email: str, password: str, role: Role) -> None:
    session_factory = get_session_factory()
    user_service = get_user_service()

    try:
        async with session_factory() as session:
            existing_id = (
                await session.execute(
                    select(User.id).where(func.lower(User.email) == normalize_email(email))
                )
            ).scalar_one_or_none()
            if existing_id is None:
                await user_service.create_user(
                    session,
                    email=email,
                    password=password,
                    full_name="Load Test",
                    role=role,
                )
                print(f"created load-test user: {email}")
                return
            await user_service.update_user(
                session,
                existing_id,
                {"password": password, "role": role, "is_active": True},
            )
            print(f"reset load-test user: {email}")
    finally:
        await dispose_engine()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--email", default="loadtest@example.edu")
    parser.add_argument("--password", default="Password123!")
    parser.add_argument("--role", choices=[role.value for role in Role], default=Role.VIEWER.value)
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    asyncio.run(seed_user(email=args.email, password=args.password, role=Role(args.role)))


if __name__ == "__main__":
    main()
