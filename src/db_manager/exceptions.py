"""Custom exceptions for the feature database manager."""


class DbManagerError(Exception):
    """Base exception for db-manager errors."""

    pass


class ValidationError(DbManagerError):
    """Exception raised when user input fails validation before any runtime call."""

    pass


class AlreadyExistsError(DbManagerError):
    """Exception raised when a container with the derived name already exists."""

    def __init__(self, container_name: str) -> None:
        self.container_name = container_name
        super().__init__(f"Container '{container_name}' already exists.")


class ContainerNotFoundError(DbManagerError):
    """Exception raised when a container does not exist."""

    def __init__(self, container_name: str) -> None:
        self.container_name = container_name
        super().__init__(f"Container '{container_name}' does not exist.")


class UnsupportedDumpError(DbManagerError):
    """Exception raised when a dump file lacks the PostgreSQL dump signature."""

    def __init__(self, dump_path: str) -> None:
        self.dump_path = dump_path
        super().__init__(
            f"Unsupported dump type for '{dump_path}'. Only PostgreSQL dumps are supported."
        )


class PortInUseError(DbManagerError):
    """Exception raised when the requested or default host port is taken."""

    def __init__(self, port: int, default: bool = False) -> None:
        self.port = port
        prefix = "Default port" if default else "Port"
        super().__init__(
            f"{prefix} {port} is already in use. "
            "Please specify a different port using the -p option."
        )


class StartupTimeoutError(DbManagerError):
    """Exception raised when PostgreSQL does not become ready in time."""

    def __init__(self, container_name: str, waited_seconds: float) -> None:
        self.container_name = container_name
        self.waited_seconds = waited_seconds
        super().__init__(
            f"PostgreSQL in container '{container_name}' was not ready "
            f"after {waited_seconds:g} seconds."
        )


class RestoreFailedError(DbManagerError):
    """Exception raised when the dump could not be restored into the database."""

    pass


class RuntimeUnavailableError(DbManagerError):
    """Exception raised when the container runtime cannot be reached."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize RuntimeUnavailableError.

        Args:
            message: Error message
            original_error: Original exception from the runtime client
        """
        self.original_error = original_error
        super().__init__(message)


class RuntimeCommandError(DbManagerError):
    """Exception raised when a container runtime operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize RuntimeCommandError.

        Args:
            message: Error message
            original_error: Original exception from the runtime client
        """
        self.original_error = original_error
        super().__init__(message)
