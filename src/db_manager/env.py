import os
from typing import NamedTuple

from dotenv import dotenv_values


class EnvOverrides(NamedTuple):
    """Externally supplied database settings, None when not set."""

    database_name: str | None
    database_user: str | None
    database_password: str | None


def _get_env_value(key: str, env_file: str) -> str | None:
    """Helper to read a value from the process environment, falling back to the .env file."""
    value = os.environ.get(key)
    if value:
        return value
    config = dotenv_values(env_file)
    return config.get(key) or None


def get_database_name(env_file: str = ".env") -> str | None:
    """Get the PostgreSQL database name from DB_NAME"""
    return _get_env_value("DB_NAME", env_file)


def get_database_user(env_file: str = ".env") -> str | None:
    """Get the PostgreSQL user from DB_USER"""
    return _get_env_value("DB_USER", env_file)


def get_database_password(env_file: str = ".env") -> str | None:
    """Get the PostgreSQL password from DB_PASSWORD"""
    return _get_env_value("DB_PASSWORD", env_file)


def load_overrides(env_file: str = ".env") -> EnvOverrides:
    """Collect all database overrides from the environment."""
    return EnvOverrides(
        database_name=get_database_name(env_file),
        database_user=get_database_user(env_file),
        database_password=get_database_password(env_file),
    )
