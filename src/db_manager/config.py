"""
Configuration for the feature database manager.

All tunables live in one immutable ManagerConfig that is built once at the
program boundary and handed to the orchestrator. Precedence is: explicit
argument > environment override (DB_NAME, DB_USER, DB_PASSWORD) > built-in
default.
"""

from dataclasses import dataclass
from pathlib import Path

from .env import EnvOverrides, load_overrides

DEFAULT_DB_USER = "dummy"
DEFAULT_DB_PASSWORD = "dummy"
DEFAULT_POSTGRES_VERSION = "15.8"
BASE_CONTAINER_NAME = "dummy-local"
BASE_DB_NAME = "dummy-local"
BASE_HOST_PORT = 5432
DEFAULT_DUMP_PATH = "./test-db.sql"
CONTAINER_DUMP_DIR = "/tmp"
POSTGRES_CONTAINER_PORT = 5432
READINESS_ATTEMPTS = 60
READINESS_INTERVAL = 2.0
RUNTIME_TIMEOUT = 3600


@dataclass(frozen=True)
class ManagerConfig:
    """
    Immutable settings shared by every command.

    Attributes:
        db_user: Default PostgreSQL user for new containers
        db_password: Default PostgreSQL password for new containers
        postgres_version: Tag of the postgres image (should match the dump's server version)
        base_container_name: Prefix of every managed container name
        base_db_name: Database name before the optional suffix
        default_port: Host port used when none is requested
        default_dump_path: SQL dump used when none is given
        container_dump_dir: Directory inside the container the dump is copied to
        readiness_attempts: Maximum pg_isready probes before giving up
        readiness_interval: Seconds between pg_isready probes
        runtime_timeout: Seconds one runtime call may take; bounds the dump restore
    """

    db_user: str = DEFAULT_DB_USER
    db_password: str = DEFAULT_DB_PASSWORD
    postgres_version: str = DEFAULT_POSTGRES_VERSION
    base_container_name: str = BASE_CONTAINER_NAME
    base_db_name: str = BASE_DB_NAME
    default_port: int = BASE_HOST_PORT
    default_dump_path: str = DEFAULT_DUMP_PATH
    container_dump_dir: str = CONTAINER_DUMP_DIR
    readiness_attempts: int = READINESS_ATTEMPTS
    readiness_interval: float = READINESS_INTERVAL
    runtime_timeout: int = RUNTIME_TIMEOUT

    @property
    def image(self) -> str:
        return f"postgres:{self.postgres_version}"

    @property
    def container_dump_path(self) -> str:
        return f"{self.container_dump_dir.rstrip('/')}/dump.sql"

    @property
    def readiness_timeout(self) -> float:
        return self.readiness_attempts * self.readiness_interval

    @classmethod
    def from_environment(
        cls, overrides: EnvOverrides | None = None, **explicit
    ) -> "ManagerConfig":
        """
        Build a config from explicit values, environment overrides and defaults.

        Args:
            overrides: Pre-loaded overrides; read from the environment when None
            **explicit: Field values that win over everything else. None values
                        are ignored so argparse defaults can be passed straight through.

        Returns:
            ManagerConfig: The resolved configuration
        """
        if overrides is None:
            overrides = load_overrides()

        values = {}
        if overrides.database_name:
            values["base_db_name"] = overrides.database_name
        if overrides.database_user:
            values["db_user"] = overrides.database_user
        if overrides.database_password:
            values["db_password"] = overrides.database_password

        values.update({key: value for key, value in explicit.items() if value is not None})
        return cls(**values)

    def resolve_dump_path(self, dump_path: str | None) -> Path:
        """Return the given dump path, or the default one when empty."""
        return Path(dump_path or self.default_dump_path)
