"""Create an administrator account, or promote an existing player.

Self-registration only ever creates players, so the first admin of a fresh
deployment is bootstrapped from the command line.

Example::
    python tooling/scripts/create_admin.py --email owner@arcade.test --username owner

The password is read from ``--password``, then ``ARCADE_ADMIN_PASSWORD``, and
is prompted for when neither is set. Promoting an existing account leaves its
password unchanged.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

from loguru import logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote an arcade administrator")
    parser.add_argument("--email", required=True, help="Administrator email address.")
    parser.add_argument("--username", help="Username for a new account (defaults to the email local part).")
    parser.add_argument("--password", help="Password for a new account.")
    return parser.parse_args()


async def _run(email: str, username: str, password: str | None) -> dict[str, str]:
    repo_root = Path(__file__).resolve().parents[2]
    api_src = repo_root / "src"
    if str(api_src) not in sys.path:
        sys.path.insert(0, str(api_src))

    from arcade_api.db.session import async_session  # type: ignore import-position
    from arcade_api.models.user import UserRoleEnum  # type: ignore import-position
    from arcade_api.services.ledger import atomic  # type: ignore import-position
    from arcade_api.services.users import UserService  # type: ignore import-position

    async with async_session() as session:
        users = UserService(session)
        existing = await users.get_user_by_email(email)
        async with atomic(session, operation="create_admin"):
            if existing is not None:
                existing.role = UserRoleEnum.ADMIN.value
                user = existing
                outcome = "promoted"
            else:
                if not password:
                    password = getpass.getpass("Admin password: ")
                user = await users.create_user(
                    email=email,
                    username=username,
                    password=password,
                    role=UserRoleEnum.ADMIN,
                )
                outcome = "created"
        return {"user_id": str(user.id), "outcome": outcome}


def main() -> int:
    args = parse_args()
    username = args.username or args.email.split("@", 1)[0]
    password = args.password or os.getenv("ARCADE_ADMIN_PASSWORD")

    try:
        summary = asyncio.run(_run(args.email, username, password))
    except RuntimeError as exc:
        logger.error("Could not create administrator", email=args.email, error=str(exc))
        return 1

    logger.success("Administrator ready", email=args.email, **summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
