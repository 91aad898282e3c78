import logging
import socket

from .exceptions import PortInUseError, ValidationError

logger = logging.getLogger(__name__)

MIN_PORT = 1024
MAX_PORT = 65535


def validate_port(value: str | int) -> int:
    """
    Parse a host port and check it lies in the unprivileged range.

    Raises:
        ValidationError: If the value is not a number between 1024 and 65535
    """
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid port number '{value}'. Please enter a number between {MIN_PORT} and {MAX_PORT}."
        ) from None
    if port < MIN_PORT or port > MAX_PORT:
        raise ValidationError(
            f"Invalid port number {port}. Please enter a number between {MIN_PORT} and {MAX_PORT}."
        )
    return port


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Check that nothing is listening on the given TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(1)
        result = sock.connect_ex((host, port))
    return result != 0


def select_port(requested: int | None, default: int) -> int:
    """
    Pick the host port for a new container.

    A requested port is used as-is if it is free. Without one, the default
    port is used if it is free. There is no fallback to another port.

    Args:
        requested: Port asked for by the user, or None
        default: Port used when none was requested

    Returns:
        int: The port to publish

    Raises:
        PortInUseError: If the chosen port is already in use
    """
    if requested is not None:
        if not is_port_available(requested):
            raise PortInUseError(requested)
        logger.debug("Using specified host port %s", requested)
        return requested

    if not is_port_available(default):
        raise PortInUseError(default, default=True)
    logger.debug("Assigned default host port %s", default)
    return default
