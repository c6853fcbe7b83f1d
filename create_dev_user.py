import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.getcwd())

from src.core.users.repository import UserRepository
from src.infra.database import init_db, close_db
from src.services.dispatch_api.security import PasswordService
from src.shared.models.enums import UserRole

DEV_PASSWORD = "dev-password"

DEV_USERS = [
    ("Dev Dispatcher", "dispatcher@dev.local", UserRole.DISPATCHER),
    ("Dev Driver", "driver@dev.local", UserRole.DRIVER),
]


async def main():
    db = await init_db()
    users = UserRepository(db)
    passwords = PasswordService()

    print("Connected to DB")

    for name, email, role in DEV_USERS:
        existing = await users.get_by_email(email)
        if existing is not None:
            print(f"{email} already exists ({existing.id})")
            continue
        user = await users.create(
            name=name,
            email=email,
            password_hash=passwords.hash(DEV_PASSWORD),
            role=role,
        )
        print(f"{role} {email} created ({user.id}), password: {DEV_PASSWORD}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(main())
