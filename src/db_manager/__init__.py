"""
Feature-branch PostgreSQL container manager.

This package creates isolated PostgreSQL containers, one per feature, seeded
from a plain-text SQL dump, and starts, stops, removes and lists them.
Key guarantees:

- Container names are derived deterministically from the feature name
- Dumps and ports are validated before any container is touched
- A failed create leaves no container behind
- Start and stop are idempotent and report notices instead of errors

Main components:
- naming: Feature name normalization and container/database names
- dump: PostgreSQL dump signature detection
- ports: Host port validation and selection
- docker: Container runtime implementation on the Docker SDK
- orchestrator: Create/start/stop/remove/list business logic
- prompt: Interactive input collection
"""

from .config import ManagerConfig
from .docker import DockerRuntime
from .dump import DumpKind, detect_dump_kind
from .exceptions import (
    AlreadyExistsError,
    ContainerNotFoundError,
    DbManagerError,
    PortInUseError,
    RestoreFailedError,
    RuntimeCommandError,
    RuntimeUnavailableError,
    StartupTimeoutError,
    UnsupportedDumpError,
    ValidationError,
)
from .models import (
    ContainerStatus,
    ContainerSummary,
    CreateRequest,
    CreateResult,
    ExecResult,
    LifecycleNotice,
)
from .naming import container_name, database_name, normalize
from .orchestrator import DatabaseOrchestrator
from .ports import select_port, validate_port
from .prompt import prompt_user_choice

__all__ = [
    # Configuration
    "ManagerConfig",
    # Naming, dumps and ports
    "normalize",
    "container_name",
    "database_name",
    "DumpKind",
    "detect_dump_kind",
    "select_port",
    "validate_port",
    # Models
    "ContainerStatus",
    "ContainerSummary",
    "CreateRequest",
    "CreateResult",
    "ExecResult",
    "LifecycleNotice",
    # Container operations
    "DockerRuntime",
    "DatabaseOrchestrator",
    # User interaction functions
    "prompt_user_choice",
    # Errors
    "DbManagerError",
    "ValidationError",
    "AlreadyExistsError",
    "ContainerNotFoundError",
    "UnsupportedDumpError",
    "PortInUseError",
    "StartupTimeoutError",
    "RestoreFailedError",
    "RuntimeUnavailableError",
    "RuntimeCommandError",
]
