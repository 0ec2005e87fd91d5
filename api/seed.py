"""
Demo data: roles, four users and a small fleet.

Runs at startup when SEED_DEMO_DATA=true, or standalone:

    DATABASE_URL=... python seed.py

Existing rows are left alone, so seeding is safe to repeat.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal

import asyncpg

from auth import repository as auth_repository
from auth import roles, security
from cars import repository as cars_repository
from core import db
from core.logging_config import configure_logging

logger = logging.getLogger(__name__)

DEMO_USERS: list[tuple[str, str, str, tuple[str, ...]]] = [
    ("admin", "admin123", "admin@carbooking.com", (roles.ROLE_ADMIN,)),
    ("john", "user123", "john@example.com", (roles.ROLE_USER,)),
    ("jane", "user123", "jane@example.com", (roles.ROLE_USER,)),
    ("manager", "manager123", "manager@carbooking.com", (roles.ROLE_ADMIN, roles.ROLE_USER)),
]

DEMO_CARS: list[tuple[str, str, str, int]] = [
    ("SED-001", "SEDAN", "50.00", 4),
    ("SED-002", "SEDAN", "55.00", 5),
    ("SED-003", "SEDAN", "60.00", 5),
    ("VAN-001", "VAN", "80.00", 8),
    ("VAN-002", "VAN", "85.00", 9),
    ("VAN-003", "VAN", "90.00", 10),
    ("SUV-001", "SUV", "70.00", 5),
    ("SUV-002", "SUV", "72.00", 5),
    ("SUV-003", "SUV", "75.00", 6),
    ("SUV-004", "SUV", "75.00", 6),
    ("SUV-005", "SUV", "78.00", 7),
    ("SUV-006", "SUV", "78.00", 7),
    ("SUV-007", "SUV", "80.00", 7),
    ("SUV-008", "SUV", "82.00", 7),
    ("SUV-009", "SUV", "85.00", 8),
    ("SUV-010", "SUV", "90.00", 8),
]


async def seed_demo_data() -> dict[str, int]:
    await auth_repository.ensure_roles(roles.ALL_ROLES)

    users_created = 0
    for username, password, email, user_roles in DEMO_USERS:
        if await auth_repository.get_user_by_username(username) is not None:
            continue
        await auth_repository.create_user(
            username=username,
            email=email,
            password_hash=security.hash_password(password),
            roles=user_roles,
        )
        users_created += 1

    cars_created = 0
    for registration_number, car_type, cost_per_day, capacity in DEMO_CARS:
        try:
            await cars_repository.insert_car(
                registration_number=registration_number,
                car_type=car_type,
                cost_per_day=Decimal(cost_per_day),
                capacity=capacity,
            )
        except asyncpg.UniqueViolationError:
            continue
        cars_created += 1

    logger.info("seed_complete users_created=%s cars_created=%s", users_created, cars_created)
    return {"users_created": users_created, "cars_created": cars_created}


async def _main() -> None:
    configure_logging()
    await db.init_pool()
    try:
        await seed_demo_data()
    finally:
        await db.close_pool()


if __name__ == "__main__":
    asyncio.run(_main())
