from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ContainerStatus(Enum):
    """Lifecycle state of a managed container as reported by the runtime."""

    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


class LifecycleNotice(Enum):
    """Outcome of start/stop/remove, including the no-op cases."""

    STARTED = "started"
    ALREADY_RUNNING = "already running"
    STOPPED = "stopped"
    ALREADY_STOPPED = "not running"
    REMOVED = "removed"


@dataclass
class ExecResult:
    """Exit code and decoded output of a command run inside a container."""

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class ContainerSummary:
    """
    One row of the container listing.

    Attributes:
        name: Container name (e.g., "dummy-local_feature_login")
        status: Running state
        ports: Published bindings (e.g., ["0.0.0.0:5433->5432/tcp"])
    """

    name: str
    status: ContainerStatus
    ports: list[str] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.status is ContainerStatus.RUNNING


@dataclass
class CreateRequest:
    """
    Validated input for creating a feature database container.

    Attributes:
        feature: Free-text feature name (normalized by the orchestrator)
        dump_path: Host path of the plain-text PostgreSQL dump
        port: Requested host port, or None for the default
        db_suffix: Optional database name suffix
        user: PostgreSQL user to create
        password: Password for that user
        base_db_name: Overrides the configured base database name when set
    """

    feature: str
    dump_path: Path
    user: str
    password: str
    port: int | None = None
    db_suffix: str = ""
    base_db_name: str | None = None


@dataclass
class CreateResult:
    """What a successful create produced."""

    container_name: str
    database_name: str
    port: int
    user: str
