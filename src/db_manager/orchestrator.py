"""
Feature database lifecycle orchestration.

This module contains the business logic for creating, starting, stopping,
removing and listing feature database containers, separated from CLI and
prompting concerns. It talks to containers only through a ContainerRuntime.
"""

import logging
import time
from typing import TYPE_CHECKING

from rich.console import Console

from . import naming
from .config import POSTGRES_CONTAINER_PORT
from .dump import DumpKind, detect_dump_kind
from .exceptions import (
    AlreadyExistsError,
    ContainerNotFoundError,
    DbManagerError,
    RestoreFailedError,
    RuntimeCommandError,
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
from .ports import select_port

if TYPE_CHECKING:
    from .config import ManagerConfig
    from .runtime import ContainerRuntime

logger = logging.getLogger(__name__)


class DatabaseOrchestrator:
    """
    Feature database container orchestration class.

    Every decision re-reads container state from the runtime; nothing is
    cached between calls.

    Args:
        runtime: Container runtime used for every container operation
        config: Resolved manager configuration
        console: Rich Console instance for progress output
    """

    def __init__(
        self, runtime: "ContainerRuntime", config: "ManagerConfig", console: Console
    ) -> None:
        self.runtime = runtime
        self.config = config
        self.console = console

    def create(self, request: CreateRequest) -> CreateResult:
        """
        Create a PostgreSQL container for a feature and restore the dump into it.

        This method performs the full create sequence:
        1. Derive the container name and refuse to reuse an existing one
        2. Check the dump carries the PostgreSQL dump signature
        3. Resolve the host port
        4. Run the postgres container
        5. Wait until pg_isready succeeds
        6. Copy the dump in and restore it with psql
        7. Relabel public.metadata.database with the new database name
        8. Delete the copied dump

        Steps 1-3 make no changes. If anything fails during steps 4-7 the
        container is stopped and removed before the error is re-raised.

        Args:
            request: Validated create request

        Returns:
            CreateResult: Name, database, port and user of the new container

        Raises:
            ValidationError: If the feature name normalizes to nothing
            AlreadyExistsError: If the container already exists
            UnsupportedDumpError: If the dump is not a plain-text PostgreSQL dump
            PortInUseError: If the host port is taken
            RuntimeCommandError: If the container cannot be started
            RuntimeUnavailableError: If the connection to the runtime is lost
            StartupTimeoutError: If PostgreSQL never becomes ready
            RestoreFailedError: If the dump or the metadata update fails
        """
        token = naming.normalize(request.feature)
        if not token:
            raise ValidationError(
                f"Feature name '{request.feature}' contains no usable characters."
            )
        container_name = f"{self.config.base_container_name}_{token}"
        database = naming.database_name(
            self.config, request.db_suffix, base=request.base_db_name
        )
        self.console.print(f"Sanitized feature name: {token}", style="cyan")
        self.console.print(f"Container name: {container_name}", style="cyan")

        if self.runtime.exists(container_name):
            raise AlreadyExistsError(container_name)

        if detect_dump_kind(request.dump_path) is not DumpKind.POSTGRESQL:
            raise UnsupportedDumpError(str(request.dump_path))

        port = select_port(request.port, self.config.default_port)

        self.console.print(
            f"Creating PostgreSQL container '{container_name}' with DB '{database}' on port {port}...",
            style="yellow",
        )
        try:
            self.runtime.create_and_start(
                container_name,
                self.config.image,
                {
                    "POSTGRES_DB": database,
                    "POSTGRES_USER": request.user,
                    "POSTGRES_PASSWORD": request.password,
                },
                {f"{POSTGRES_CONTAINER_PORT}/tcp": port},
            )
            self._wait_until_ready(container_name, request.user, database)
            self._restore_dump(container_name, request, database)
        except BaseException:
            self._rollback(container_name)
            raise

        self._remove_copied_dump(container_name)
        self.console.print(
            f"Container '{container_name}' is set up and running.", style="bold green"
        )
        return CreateResult(
            container_name=container_name,
            database_name=database,
            port=port,
            user=request.user,
        )

    def start(self, container_name: str) -> LifecycleNotice:
        """
        Start a stopped container.

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        status = self.runtime.status(container_name)
        if status is ContainerStatus.ABSENT:
            raise ContainerNotFoundError(container_name)
        if status is ContainerStatus.RUNNING:
            return LifecycleNotice.ALREADY_RUNNING

        self.runtime.start(container_name)
        return LifecycleNotice.STARTED

    def stop(self, container_name: str) -> LifecycleNotice:
        """
        Stop a running container.

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        status = self.runtime.status(container_name)
        if status is ContainerStatus.ABSENT:
            raise ContainerNotFoundError(container_name)
        if status is not ContainerStatus.RUNNING:
            return LifecycleNotice.ALREADY_STOPPED

        self.runtime.stop(container_name)
        return LifecycleNotice.STOPPED

    def remove(self, container_name: str) -> LifecycleNotice:
        """
        Remove a container, stopping it first when it is running.

        A failed stop is logged and removal is attempted anyway. There is no
        confirmation here; callers that want one ask before calling.

        Raises:
            ContainerNotFoundError: If the container does not exist
            RuntimeCommandError: If the removal itself fails
        """
        status = self.runtime.status(container_name)
        if status is ContainerStatus.ABSENT:
            raise ContainerNotFoundError(container_name)

        if status is ContainerStatus.RUNNING:
            self.console.print(
                f"Stopping running container '{container_name}'...", style="yellow"
            )
            try:
                self.runtime.stop(container_name)
            except RuntimeCommandError as e:
                logger.warning("Could not stop %s before removal: %s", container_name, e)

        self.console.print(f"Removing container '{container_name}'...", style="yellow")
        self.runtime.remove(container_name)
        return LifecycleNotice.REMOVED

    def _wait_until_ready(self, container_name: str, user: str, database: str) -> None:
        """
        Poll pg_isready until PostgreSQL accepts connections.

        Exec failures (e.g., the container is still initializing) count as
        not ready.

        Raises:
            StartupTimeoutError: If the server is not ready after
                                 readiness_attempts probes
        """
        self.console.print("Waiting for PostgreSQL to be ready...")
        command = ["pg_isready", "-U", user, "-d", database]
        attempts = self.config.readiness_attempts

        for attempt in range(1, attempts + 1):
            try:
                result = self.runtime.exec(container_name, command)
                if result.ok:
                    self.console.print("PostgreSQL is ready.", style="green")
                    return
                logger.debug("pg_isready attempt %s/%s: %s", attempt, attempts, result.output.strip())
            except RuntimeCommandError as e:
                logger.debug("pg_isready attempt %s/%s failed: %s", attempt, attempts, e)

            if attempt < attempts:
                time.sleep(self.config.readiness_interval)

        raise StartupTimeoutError(container_name, self.config.readiness_timeout)

    def _restore_dump(
        self, container_name: str, request: CreateRequest, database: str
    ) -> None:
        """
        Copy the dump into the container, run it, then relabel the metadata table.

        The password is handed to psql as PGPASSWORD in the exec environment.

        Raises:
            RestoreFailedError: If copying, restoring or relabelling fails
        """
        dump_path = self.config.container_dump_path
        credentials = {"PGPASSWORD": request.password}

        try:
            self.runtime.copy_file(request.dump_path, container_name, dump_path)
        except RuntimeCommandError as e:
            raise RestoreFailedError(f"Could not copy the dump into the container: {e}") from e

        self.console.print(
            f"Restoring the database from '{request.dump_path}'...", style="yellow"
        )
        result = self._psql(
            container_name, request.user, database, ["-f", dump_path], credentials
        )
        if not result.ok:
            raise RestoreFailedError(
                f"Restore failed with exit code {result.exit_code}: {result.output.strip()}"
            )

        self.console.print(
            f"Updating 'database' column in 'metadata' table to '{database}' where applicable...",
            style="yellow",
        )
        escaped = database.replace("'", "''")
        result = self._psql(
            container_name,
            request.user,
            database,
            ["-c", f"UPDATE public.metadata SET database = '{escaped}' WHERE database IS NOT NULL;"],
            credentials,
        )
        if not result.ok:
            raise RestoreFailedError(
                f"Metadata update failed with exit code {result.exit_code}: {result.output.strip()}"
            )
        self.console.print("Database restoration completed successfully.", style="green")

    def _psql(
        self,
        container_name: str,
        user: str,
        database: str,
        args: list[str],
        environment: dict[str, str],
    ) -> ExecResult:
        command = ["psql", "-U", user, "-d", database, *args]
        try:
            return self.runtime.exec(container_name, command, environment=environment)
        except RuntimeCommandError as e:
            raise RestoreFailedError(str(e)) from e

    def _remove_copied_dump(self, container_name: str) -> None:
        dump_path = self.config.container_dump_path
        try:
            result = self.runtime.exec(container_name, ["rm", "-f", dump_path])
        except RuntimeCommandError as e:
            logger.warning("Could not remove %s from %s: %s", dump_path, container_name, e)
            return
        if not result.ok:
            logger.warning(
                "Could not remove %s from %s: %s", dump_path, container_name, result.output.strip()
            )

    def _rollback(self, container_name: str) -> None:
        """Stop and remove a partially created container, logging any failure."""
        self.console.print("An error occurred. Cleaning up...", style="yellow")
        try:
            if self.runtime.status(container_name) is ContainerStatus.ABSENT:
                return
            self.runtime.stop(container_name)
        except DbManagerError as e:
            logger.warning("Rollback could not stop %s: %s", container_name, e)
        try:
            self.runtime.remove(container_name)
        except DbManagerError as e:
            logger.error("Rollback could not remove %s: %s", container_name, e)

    def list(self) -> list[ContainerSummary]:
        """List every container named <base container name>_<token>."""
        return self.runtime.list(f"{self.config.base_container_name}_")
