"""
Pytest configuration and shared fixtures.

Ensures the src directory is importable and provides an in-memory container
runtime so orchestrator tests never need a Docker daemon.
"""
import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

# Add the src directory to Python path so the package imports without installation
src_root = Path(__file__).parent.parent / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from db_manager.config import ManagerConfig  # noqa: E402
from db_manager.exceptions import ContainerNotFoundError  # noqa: E402
from db_manager.models import ContainerStatus, ContainerSummary, ExecResult  # noqa: E402

VALID_DUMP = """--
-- PostgreSQL database dump
--

-- Dumped from database version 15.8
SET statement_timeout = 0;
CREATE TABLE public.metadata (id integer, database text);
"""


class FakeRuntime:
    """
    In-memory ContainerRuntime.

    Containers are kept in a dict; every call is appended to ``calls`` so
    tests can assert which operations (and in particular which mutations)
    happened. ``exec_handler`` decides the result of exec calls.
    """

    MUTATIONS = {"create_and_start", "start", "stop", "remove", "copy_file"}

    def __init__(self):
        self.containers: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.exec_handler = lambda name, command, environment: ExecResult(0, "")
        self.fail_on: dict[str, Exception] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return None

    def add(self, name, running=False, ports=None):
        self.containers[name] = {
            "status": ContainerStatus.RUNNING if running else ContainerStatus.STOPPED,
            "ports": ports or [],
        }

    def mutations(self):
        return [call for call in self.calls if call[0] in self.MUTATIONS]

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def _require(self, name):
        if name not in self.containers:
            raise ContainerNotFoundError(name)
        return self.containers[name]

    def status(self, name):
        self.calls.append(("status", name))
        if name not in self.containers:
            return ContainerStatus.ABSENT
        return self.containers[name]["status"]

    def exists(self, name):
        return self.status(name) is not ContainerStatus.ABSENT

    def is_running(self, name):
        return self.status(name) is ContainerStatus.RUNNING

    def create_and_start(self, name, image, environment, ports):
        self.calls.append(("create_and_start", name, image, dict(environment), dict(ports)))
        self.containers[name] = {
            "status": ContainerStatus.RUNNING,
            "ports": [f"0.0.0.0:{port}->{container_port}" for container_port, port in ports.items()],
            "environment": dict(environment),
        }
        self._maybe_fail("create_and_start")

    def start(self, name):
        self.calls.append(("start", name))
        self._maybe_fail("start")
        self._require(name)["status"] = ContainerStatus.RUNNING

    def stop(self, name):
        self.calls.append(("stop", name))
        self._maybe_fail("stop")
        self._require(name)["status"] = ContainerStatus.STOPPED

    def remove(self, name):
        self.calls.append(("remove", name))
        self._maybe_fail("remove")
        self._require(name)
        del self.containers[name]

    def exec(self, name, command, environment=None):
        self.calls.append(("exec", name, list(command), environment))
        self._require(name)
        return self.exec_handler(name, command, environment)

    def copy_file(self, host_path, name, container_path):
        self.calls.append(("copy_file", str(host_path), name, container_path))
        self._maybe_fail("copy_file")
        self._require(name)

    def list(self, name_prefix):
        self.calls.append(("list", name_prefix))
        return [
            ContainerSummary(name, data["status"], list(data["ports"]))
            for name, data in sorted(self.containers.items())
            if name.startswith(name_prefix)
        ]


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def config():
    return ManagerConfig(readiness_attempts=3, readiness_interval=0.01)


@pytest.fixture
def valid_dump(tmp_path):
    path = tmp_path / "valid.sql"
    path.write_text(VALID_DUMP)
    return path


@pytest.fixture
def ports_free():
    """Make every port look free."""
    with patch("db_manager.ports.is_port_available", return_value=True) as mock_check:
        yield mock_check


@pytest.fixture
def no_sleep():
    with patch("db_manager.orchestrator.time.sleep") as mock_sleep:
        yield mock_sleep
