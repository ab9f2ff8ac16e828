"""Database initialization script."""

from loguru import logger

from src.app.core.services import DbManageService, DbSessionService, Failure, Ok
from src.app.core.services.user import UserService
from src.app.entities.core.user import SqlUserRepository, UserCreate
from src.app.runtime.config.config_data import ConfigData
from src.app.runtime.context import get_config

DEMO_USERS = [
    UserCreate(
        first_name="John",
        last_name="Doe",
        email="john.doe@example.com",
        phone_number="+1234567890",
    ),
    UserCreate(
        first_name="Jane",
        last_name="Smith",
        email="jane.smith@example.com",
        phone_number="+0987654321",
    ),
]


def seed_demo_users(service: UserService) -> int:
    """Insert the demo users into an empty store. Returns how many were added."""
    existing = service.list_all()
    if isinstance(existing, Failure):
        raise existing.cause
    if existing.value:
        logger.info("User store already has data; skipping demo seed")
        return 0

    added = 0
    for user in DEMO_USERS:
        if isinstance(service.create(user), Ok):
            added += 1
    logger.info("Seeded {} demo users", added)
    return added


def init_db(config: ConfigData | None = None, seed: bool = False) -> int:
    """Create all database tables, optionally seeding the demo users."""
    main_config = config or get_config()
    database_service = DbSessionService(main_config)
    try:
        DbManageService(database_service).create_all()
        if not seed:
            return 0
        return seed_demo_users(UserService(SqlUserRepository(database_service)))
    finally:
        database_service.dispose()


if __name__ == "__main__":
    init_db(seed=get_config().store.seed_demo_users)
