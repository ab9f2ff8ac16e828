from dataclasses import dataclass

from loguru import logger

from src.app.core.services import DbManageService, DbSessionService, UserService
from src.app.core.telemetry import Telemetry
from src.app.entities.core.user import (
    InMemoryUserRepository,
    SqlUserRepository,
    UserRepository,
)
from src.app.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    telemetry: Telemetry
    user_repository: UserRepository
    user_service: UserService
    database_service: DbSessionService | None = None

    def close(self) -> None:
        if self.database_service is not None:
            self.database_service.dispose()


def build_dependencies(
    config: ConfigData,
    telemetry: Telemetry,
    repository: UserRepository | None = None,
) -> ApplicationDependencies:
    """Wire the user store and service for one application instance.

    An explicit ``repository`` wins over ``config.store.backend``.
    """
    database_service = None
    if repository is None:
        if config.store.backend == "sql":
            database_service = DbSessionService(config)
            DbManageService(database_service).create_all()
            repository = SqlUserRepository(database_service)
        else:
            repository = InMemoryUserRepository()
    logger.info("Using {} user store", type(repository).__name__)

    return ApplicationDependencies(
        config=config,
        telemetry=telemetry,
        user_repository=repository,
        user_service=UserService(repository),
        database_service=database_service,
    )
