import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ManagerConfig

_INVALID_RUN = re.compile(r"[^a-z0-9_]+")


def normalize(text: str) -> str:
    """
    Turn free text into a token usable in container and database names.

    Lowercases the input, replaces every run of characters outside
    ``[a-z0-9_]`` with a single underscore and strips trailing underscores.

    Args:
        text: Free-text feature name or database suffix

    Returns:
        str: Normalized token, empty when the input has no usable characters

    Example:
        >>> normalize("Feature Login!!")
        'feature_login'
    """
    return _INVALID_RUN.sub("_", text.lower()).rstrip("_")


def container_name(config: "ManagerConfig", feature: str) -> str:
    """Derive the managed container name for a feature."""
    return f"{config.base_container_name}_{normalize(feature)}"


def normalize_suffix(base_name: str, suffix: str | None) -> str:
    """
    Normalize a database suffix.

    A suffix equal to the base database name would produce a name like
    ``app_app``, so it is dropped.
    """
    if not suffix:
        return ""
    token = normalize(suffix)
    if token in (base_name, normalize(base_name)):
        return ""
    return token


def database_name(
    config: "ManagerConfig", suffix: str | None = None, base: str | None = None
) -> str:
    """Build ``<base>`` or ``<base>_<suffix>``."""
    base_name = base or config.base_db_name
    token = normalize_suffix(base_name, suffix)
    return f"{base_name}_{token}" if token else base_name
