"""
Container runtime capability consumed by the orchestrator.

The orchestrator never talks to a container daemon directly; it only calls
the operations declared here. DockerRuntime is the production implementation.
"""

from pathlib import Path
from typing import Protocol

from .models import ContainerStatus, ContainerSummary, ExecResult


class ContainerRuntime(Protocol):
    """Protocol for container runtimes the orchestrator can drive."""

    def status(self, name: str) -> ContainerStatus: ...

    def exists(self, name: str) -> bool: ...

    def is_running(self, name: str) -> bool: ...

    def create_and_start(
        self,
        name: str,
        image: str,
        environment: dict[str, str],
        ports: dict[str, int],
    ) -> None: ...

    def start(self, name: str) -> None: ...

    def stop(self, name: str) -> None: ...

    def remove(self, name: str) -> None: ...

    def exec(
        self,
        name: str,
        command: list[str],
        environment: dict[str, str] | None = None,
    ) -> ExecResult: ...

    def copy_file(self, host_path: Path, name: str, container_path: str) -> None: ...

    def list(self, name_prefix: str) -> list[ContainerSummary]: ...
