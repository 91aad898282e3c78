import logging
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import Optional

import docker
import docker.errors
import requests.exceptions
from docker.models.containers import Container

from .exceptions import (
    ContainerNotFoundError,
    RuntimeCommandError,
    RuntimeUnavailableError,
)
from .models import ContainerStatus, ContainerSummary, ExecResult

logger = logging.getLogger(__name__)


class DockerRuntime:
    """
    Context manager exposing the container runtime operations through the Docker SDK.

    Provides efficient client reuse and translates Docker SDK errors into the
    db-manager exception hierarchy, so nothing Docker-specific reaches the
    orchestrator.

    Example:
        with DockerRuntime() as runtime:
            orchestrator = DatabaseOrchestrator(runtime, config, console)
            orchestrator.start("dummy-local_feature_login")
    """

    def __init__(self, timeout: Optional[int] = None) -> None:
        """
        Args:
            timeout: Seconds an API call (including a whole exec such as a
                     restore) may take; None means the SDK default
        """
        self.timeout = timeout
        self.client: Optional[docker.DockerClient] = None

    def __enter__(self) -> "DockerRuntime":
        """
        Enter the context manager and initialize Docker client.

        Returns:
            DockerRuntime: Self for use in with statements

        Raises:
            RuntimeUnavailableError: If the Docker daemon cannot be reached
        """
        try:
            if self.timeout is None:
                self.client = docker.from_env()
            else:
                self.client = docker.from_env(timeout=self.timeout)
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise RuntimeUnavailableError(
                f"Cannot connect to Docker. Is the Docker daemon running? ({e})", e
            ) from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit the context manager and clean up Docker client connection."""
        if self.client:
            self.client.close()

    def _require_client(self) -> docker.DockerClient:
        if self.client is None:
            raise RuntimeUnavailableError(
                "DockerRuntime not properly initialized. Use as context manager."
            )
        return self.client

    def _get_container(self, name: str) -> Container:
        """
        Look up a container by exact name.

        Raises:
            ContainerNotFoundError: If no container has that name
            RuntimeCommandError: If the Docker API call fails
        """
        client = self._require_client()
        try:
            return client.containers.get(name)
        except docker.errors.NotFound:
            raise ContainerNotFoundError(name) from None
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to inspect container {name}: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

    def status(self, name: str) -> ContainerStatus:
        """Report whether a container is absent, stopped or running."""
        try:
            container = self._get_container(name)
        except ContainerNotFoundError:
            return ContainerStatus.ABSENT
        return _status_of(container)

    def exists(self, name: str) -> bool:
        return self.status(name) is not ContainerStatus.ABSENT

    def is_running(self, name: str) -> bool:
        return self.status(name) is ContainerStatus.RUNNING

    def create_and_start(
        self,
        name: str,
        image: str,
        environment: dict[str, str],
        ports: dict[str, int],
    ) -> None:
        """
        Run a new detached container.

        The image is pulled by the SDK when it is not available locally.

        Args:
            name: Container name
            image: Image reference (e.g., "postgres:15.8")
            environment: Environment variables for the container
            ports: Container port to host port mapping (e.g., {"5432/tcp": 5433})

        Raises:
            RuntimeCommandError: If the container cannot be created or started
        """
        client = self._require_client()
        logger.debug("Running %s as %s with ports %s", image, name, ports)
        try:
            client.containers.run(
                image,
                name=name,
                environment=environment,
                ports=ports,
                detach=True,
            )
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to start container {name}: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

    def start(self, name: str) -> None:
        container = self._get_container(name)
        try:
            container.start()
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to start container {name}: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

    def stop(self, name: str) -> None:
        container = self._get_container(name)
        try:
            container.stop()
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to stop container {name}: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

    def remove(self, name: str) -> None:
        container = self._get_container(name)
        try:
            container.remove()
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to remove container {name}: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

    def exec(
        self,
        name: str,
        command: list[str],
        environment: dict[str, str] | None = None,
    ) -> ExecResult:
        """
        Run a command inside a running container.

        Args:
            name: Container name
            command: Command and arguments
            environment: Extra environment for this command only; used to pass
                         secrets without putting them on a command line

        Returns:
            ExecResult: Exit code and decoded combined output

        Raises:
            RuntimeCommandError: If the exec cannot be started (e.g., container stopped)
        """
        container = self._get_container(name)
        try:
            exit_code, output = container.exec_run(command, environment=environment)
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(
                f"Failed to run {command[0]} in container {name}: {e}", e
            ) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e
        return ExecResult(exit_code, (output or b"").decode("utf-8", errors="replace"))

    def copy_file(self, host_path: Path, name: str, container_path: str) -> None:
        """
        Copy a host file into a container.

        The file is archived into a temporary tar on disk and streamed with
        put_archive, which is what ``docker cp`` does. Dumps are never held
        in memory.

        Raises:
            RuntimeCommandError: If the file cannot be read or the upload fails
        """
        container = self._get_container(name)
        target = PurePosixPath(container_path)
        with tempfile.TemporaryFile() as archive:
            try:
                with tarfile.open(fileobj=archive, mode="w") as tar:
                    tar.add(str(host_path), arcname=target.name, filter=_readable_by_all)
            except OSError as e:
                raise RuntimeCommandError(f"Cannot read {host_path}: {e}", e) from e
            archive.seek(0)

            try:
                copied = container.put_archive(path=str(target.parent), data=archive)
            except docker.errors.DockerException as e:
                raise RuntimeCommandError(
                    f"Failed to copy {host_path} into container {name}: {e}", e
                ) from e
            except requests.exceptions.RequestException as e:
                raise _connection_lost(e) from e
        if not copied:
            raise RuntimeCommandError(f"Failed to copy {host_path} into container {name}")

    def list(self, name_prefix: str) -> list[ContainerSummary]:
        """
        List every container, running or not, whose name starts with the prefix.

        Docker's name filter matches substrings, so results are filtered again
        on the exact prefix.
        """
        client = self._require_client()
        try:
            containers = client.containers.list(all=True, filters={"name": name_prefix})
        except docker.errors.DockerException as e:
            raise RuntimeCommandError(f"Failed to list containers: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise _connection_lost(e) from e

        summaries = [
            ContainerSummary(
                name=container.name,
                status=_status_of(container),
                ports=_port_bindings(container),
            )
            for container in containers
            if container.name.startswith(name_prefix)
        ]
        return sorted(summaries, key=lambda summary: summary.name)


_UP_STATES = frozenset({"running", "paused", "restarting"})


def _connection_lost(error: requests.exceptions.RequestException) -> RuntimeUnavailableError:
    return RuntimeUnavailableError(f"Lost connection to the Docker daemon: {error}", error)


def _readable_by_all(tarinfo: tarfile.TarInfo) -> tarfile.TarInfo:
    tarinfo.mode = 0o644
    return tarinfo


def _status_of(container: Container) -> ContainerStatus:
    # Paused and restarting containers still hold their process; stop handles both.
    if container.status in _UP_STATES:
        return ContainerStatus.RUNNING
    return ContainerStatus.STOPPED


def _port_bindings(container: Container) -> list[str]:
    """
    Format published ports like ``docker ps`` does (e.g., "0.0.0.0:5433->5432/tcp").

    Stopped containers have no live bindings, so the configured ones are shown.
    """
    attrs = container.attrs or {}
    bindings = attrs.get("NetworkSettings", {}).get("Ports") or {}
    if not any(bindings.values()):
        bindings = attrs.get("HostConfig", {}).get("PortBindings") or {}

    formatted = []
    for container_port, host_bindings in sorted(bindings.items()):
        for binding in host_bindings or []:
            host_ip = binding.get("HostIp") or "0.0.0.0"
            formatted.append(f"{host_ip}:{binding.get('HostPort')}->{container_port}")
    return formatted
