"""
Script to create a local admin user with a password and their own organization.

Usage:
    python -m worklog.scripts.create_local_admin --email admin@example.com \
        --password secret123 --org "Local Org"
"""

import argparse
import asyncio

from sqlmodel import select

from worklog.core.auth import hash_password
from worklog.core.database import get_session_context
from worklog.models.organization import Organization
from worklog.models.user import User
from worklog.services import organizations as org_service
from worklog.services.users import normalize_email
from worklog_shared.schemas.common import slugify


async def create_admin(email: str, password: str, org_name: str, name: str | None = None):
    email = normalize_email(email)

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(
                email=email,
                name=name or email.split("@")[0],
                password_hash=hash_password(password),
            )
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")
        else:
            user.password_hash = hash_password(password)
            session.add(user)
            print(f"User {email} already exists; password reset.")

        result = await session.execute(
            select(Organization).where(Organization.slug == slugify(org_name))
        )
        if result.scalar_one_or_none():
            print(f"Organization '{org_name}' already exists; membership left unchanged.")
        else:
            org = await org_service.create_org(org_name, user, session)
            print(f"Created organization '{org.name}' ({org.slug}) with {email} as admin.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--org", default="Local Organization", help="Organization name")
    parser.add_argument("--name", default=None, help="Display name (defaults to the email local part)")

    args = parser.parse_args()

    asyncio.run(create_admin(args.email, args.password, args.org, args.name))
