"""
Create Admin User Script
Creates an admin account from ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD
if no user with that email exists yet.
Usage: python -m app.scripts.create_admin
"""

import asyncio
import os
import sys

from app.config import get_settings
from app.database import Database
from app.services import user_store
from app.services.passwords import PasswordHasher
from app.utils.password_policy import validate_password


async def create_admin() -> int:
    settings = get_settings()
    username = os.getenv("ADMIN_USERNAME", "admin")
    email = os.getenv("ADMIN_EMAIL", "admin@localhost")

    # Require ADMIN_PASSWORD from env
    password = os.getenv("ADMIN_PASSWORD")
    if not password:
        print("ADMIN_PASSWORD is required to create the admin user.")
        return 1

    errors = validate_password(password)
    if errors:
        print("ADMIN_PASSWORD does not meet password policy:")
        for err in errors:
            print(f"- {err}")
        return 1

    database = Database(settings)
    try:
        async with database.session_factory() as db:
            if await user_store.exists_with(db, username=username, email=email):
                print("Admin user already exists.")
                return 0

            hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
            await user_store.create(
                db,
                username=username,
                email=email,
                password_hash=hasher.hash(password),
                is_admin=True,
            )
            await db.commit()
            print(f"Successfully created admin user: {username}")
            return 0
    finally:
        await database.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(create_admin()))
