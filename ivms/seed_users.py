"""
Database seeding script for initial users.

Creates one user per department for testing and development.
Run with `python -m ivms.seed_users` after the database is set up.
"""

import asyncio

from sqlalchemy import select

from ivms.app.db.session import AsyncSessionLocal, engine, Base
from ivms.app.domain.department_rules import validate_department_role
from ivms.app.models.user import User
from ivms.app.models.enums import Department, Role
from ivms.app.core.security import get_password_hash

# Import remaining models so create_all sees every table
from ivms.app.models import (  # noqa: F401
    audit_log, car, car_inventory_request, car_request, maintenance_request,
    notification, part, purchase_request, rental_company
)

SEED_USERS = [
    ("superadmin", "admin123", "System Administrator", Department.ADMIN, Role.SUPER_ADMIN),
    ("operator", "operator123", "Operations Officer", Department.OPERATION, Role.OPERATOR),
    ("garage", "garage123", "Garage Supervisor", Department.GARAGE, Role.ADMIN),
    ("technician", "tech123", "Maintenance Technician", Department.MAINTENANCE, Role.TECHNICIAN),
]


async def seed_users():
    """
    Seed initial users.

    Existing usernames are skipped, so the script can be re-run.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        for username, password, full_name, department, role in SEED_USERS:
            validate_department_role(department, role)

            result = await db.execute(select(User).where(User.username == username))
            if result.scalar_one_or_none():
                print(f"ℹ️  {username} already exists, skipping")
                continue

            db.add(User(
                username=username,
                hashed_password=get_password_hash(password),
                full_name=full_name,
                department=department,
                role=role,
                is_active=True
            ))
            print(f"✅ Created {department.value}/{role.value} user (username: {username}, password: {password})")

        await db.commit()

    await engine.dispose()
    print("\n🎉 User seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_users())
