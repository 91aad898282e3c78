"""
Tests for the container lifecycle orchestrator.

Uses the in-memory FakeRuntime from conftest, so no Docker daemon is needed.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
import requests.exceptions

from db_manager import (
    AlreadyExistsError,
    ContainerNotFoundError,
    ContainerStatus,
    CreateRequest,
    DatabaseOrchestrator,
    LifecycleNotice,
    PortInUseError,
    RestoreFailedError,
    RuntimeCommandError,
    StartupTimeoutError,
    UnsupportedDumpError,
    ValidationError,
)
from db_manager.models import ExecResult

CONTAINER = "dummy-local_feature_login"


def make_request(dump_path, **overrides):
    values = dict(
        feature="Feature Login!!",
        dump_path=Path(dump_path),
        port=5433,
        db_suffix="orders",
        user="u",
        password="p",
    )
    values.update(overrides)
    return CreateRequest(**values)


@pytest.fixture
def orchestrator(fake_runtime, config, console):
    return DatabaseOrchestrator(fake_runtime, config, console)


def failing_on(program, exit_code=1, output="boom"):
    """exec handler failing every command whose first word is ``program``."""

    def handler(name, command, environment):
        if command[0] == program:
            return ExecResult(exit_code, output)
        return ExecResult(0, "")

    return handler


def failing_psql_containing(fragment):
    def handler(name, command, environment):
        if command[0] == "psql" and any(fragment in part for part in command):
            return ExecResult(1, 'ERROR:  relation "public.metadata" does not exist')
        return ExecResult(0, "")

    return handler


class TestCreate:
    """Test the create workflow."""

    def test_scenario_feature_login(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test the full create scenario and the follow-up collision."""
        result = orchestrator.create(make_request(valid_dump))

        assert result.container_name == CONTAINER
        assert result.database_name.endswith("_orders")
        assert result.database_name == "dummy-local_orders"
        assert result.port == 5433
        assert fake_runtime.status(CONTAINER) is ContainerStatus.RUNNING

        create_call = next(c for c in fake_runtime.calls if c[0] == "create_and_start")
        _, name, image, environment, ports = create_call
        assert name == CONTAINER
        assert image == "postgres:15.8"
        assert environment == {
            "POSTGRES_DB": "dummy-local_orders",
            "POSTGRES_USER": "u",
            "POSTGRES_PASSWORD": "p",
        }
        assert ports == {"5432/tcp": 5433}

        with pytest.raises(AlreadyExistsError):
            orchestrator.create(make_request(valid_dump, feature="feature-login"))

    def test_runs_steps_in_order(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test readiness, copy, restore, relabel and cleanup ordering."""
        orchestrator.create(make_request(valid_dump))

        steps = [
            c[2][0] if c[0] == "exec" else c[0]
            for c in fake_runtime.calls
            if c[0] in ("create_and_start", "exec", "copy_file")
        ]
        assert steps == ["create_and_start", "pg_isready", "copy_file", "psql", "psql", "rm"]

        copy_call = next(c for c in fake_runtime.calls if c[0] == "copy_file")
        assert copy_call[1] == str(valid_dump)
        assert copy_call[3] == "/tmp/dump.sql"

    def test_restore_commands(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test psql invocations and the metadata relabel statement."""
        orchestrator.create(make_request(valid_dump))

        psql_calls = [c for c in fake_runtime.calls if c[0] == "exec" and c[2][0] == "psql"]
        restore, relabel = psql_calls
        assert restore[2] == ["psql", "-U", "u", "-d", "dummy-local_orders", "-f", "/tmp/dump.sql"]
        assert relabel[2][-1] == (
            "UPDATE public.metadata SET database = 'dummy-local_orders' WHERE database IS NOT NULL;"
        )

    def test_password_never_on_command_line(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test that psql receives the password through its environment only."""
        orchestrator.create(make_request(valid_dump, password="s3cr3t"))

        for call in fake_runtime.calls:
            if call[0] == "exec":
                assert "s3cr3t" not in " ".join(call[2])
                if call[2][0] == "psql":
                    assert call[3] == {"PGPASSWORD": "s3cr3t"}

    def test_without_suffix_uses_base_database(self, orchestrator, valid_dump, ports_free, no_sleep):
        result = orchestrator.create(make_request(valid_dump, db_suffix=""))
        assert result.database_name == "dummy-local"

    def test_base_db_name_override(self, orchestrator, valid_dump, ports_free, no_sleep):
        result = orchestrator.create(make_request(valid_dump, base_db_name="shop"))
        assert result.database_name == "shop_orders"

    def test_default_port_when_none_requested(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        result = orchestrator.create(make_request(valid_dump, port=None))
        assert result.port == 5432
        ports_free.assert_called_once_with(5432)

    def test_existing_container_fails_without_mutation(self, orchestrator, fake_runtime, valid_dump, ports_free):
        """Test that a name collision fails before any runtime mutation."""
        fake_runtime.add(CONTAINER, running=False)

        with pytest.raises(AlreadyExistsError, match=CONTAINER):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.mutations() == []
        ports_free.assert_not_called()

    def test_unsupported_dump_fails_before_container(self, orchestrator, fake_runtime, tmp_path, ports_free):
        """Test that a dump without the signature creates nothing."""
        bad = tmp_path / "bad.sql"
        bad.write_text("-- MySQL dump\n")

        with pytest.raises(UnsupportedDumpError):
            orchestrator.create(make_request(bad))

        assert fake_runtime.mutations() == []
        assert fake_runtime.containers == {}

    def test_port_in_use_creates_no_container(self, orchestrator, fake_runtime, valid_dump):
        """Test that a bound explicit port fails and creates nothing."""
        with patch("db_manager.ports.is_port_available", return_value=False):
            with pytest.raises(PortInUseError, match="5433"):
                orchestrator.create(make_request(valid_dump))

        assert fake_runtime.mutations() == []

    def test_empty_feature_token_rejected(self, orchestrator, fake_runtime, valid_dump):
        with pytest.raises(ValidationError):
            orchestrator.create(make_request(valid_dump, feature="!!!"))
        assert fake_runtime.calls == []


class TestCreateRollback:
    """Test that failed creates leave no container behind."""

    def test_restore_failure_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test that a failing psql restore removes the container and surfaces RestoreFailed."""
        fake_runtime.exec_handler = failing_psql_containing("-f")

        with pytest.raises(RestoreFailedError, match="exit code 1"):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.status(CONTAINER) is ContainerStatus.ABSENT
        assert ("stop", CONTAINER) in fake_runtime.calls
        assert ("remove", CONTAINER) in fake_runtime.calls

    def test_metadata_update_failure_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        fake_runtime.exec_handler = failing_psql_containing("UPDATE public.metadata")

        with pytest.raises(RestoreFailedError, match="Metadata update failed"):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.status(CONTAINER) is ContainerStatus.ABSENT

    def test_copy_failure_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        fake_runtime.fail_on["copy_file"] = RuntimeCommandError("disk full")

        with pytest.raises(RestoreFailedError, match="disk full"):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.containers == {}

    def test_readiness_timeout_rolls_back(self, orchestrator, fake_runtime, config, valid_dump, ports_free, no_sleep):
        """Test the bounded readiness wait and its rollback."""
        fake_runtime.exec_handler = failing_on("pg_isready", exit_code=2, output="no response")

        with pytest.raises(StartupTimeoutError):
            orchestrator.create(make_request(valid_dump))

        probes = [c for c in fake_runtime.calls if c[0] == "exec" and c[2][0] == "pg_isready"]
        assert len(probes) == config.readiness_attempts
        assert no_sleep.call_count == config.readiness_attempts - 1
        no_sleep.assert_called_with(config.readiness_interval)
        assert fake_runtime.containers == {}

    def test_readiness_retries_until_ready(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test that exec errors and non-zero probes are retried."""
        outcomes = iter([RuntimeCommandError("starting"), ExecResult(2, "no response"), ExecResult(0, "accepting")])

        def handler(name, command, environment):
            if command[0] == "pg_isready":
                outcome = next(outcomes)
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            return ExecResult(0, "")

        fake_runtime.exec_handler = handler
        result = orchestrator.create(make_request(valid_dump))

        assert result.container_name == CONTAINER
        assert no_sleep.call_count == 2

    def test_engine_start_failure_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test that a container created but failing to start is cleaned up."""
        fake_runtime.fail_on["create_and_start"] = RuntimeCommandError("port is already allocated")

        with pytest.raises(RuntimeCommandError, match="already allocated"):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.containers == {}

    def test_rollback_failure_keeps_original_error(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep, caplog):
        """Test that rollback errors are logged while the original error propagates."""
        fake_runtime.exec_handler = failing_psql_containing("-f")
        fake_runtime.fail_on["stop"] = RuntimeCommandError("stop failed")
        fake_runtime.fail_on["remove"] = RuntimeCommandError("remove failed")

        with pytest.raises(RestoreFailedError):
            orchestrator.create(make_request(valid_dump))

        assert "Rollback could not remove" in caplog.text

    def test_keyboard_interrupt_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free):
        with patch("db_manager.orchestrator.time.sleep", side_effect=KeyboardInterrupt):
            fake_runtime.exec_handler = failing_on("pg_isready")
            with pytest.raises(KeyboardInterrupt):
                orchestrator.create(make_request(valid_dump))

        assert fake_runtime.containers == {}

    def test_transport_error_during_restore_rolls_back(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep):
        """Test that a failure from below the runtime layer still removes the container."""

        def handler(name, command, environment):
            if command[0] == "psql":
                raise requests.exceptions.ReadTimeout("Read timed out. (read timeout=60)")
            return ExecResult(0, "")

        fake_runtime.exec_handler = handler

        with pytest.raises(requests.exceptions.ReadTimeout):
            orchestrator.create(make_request(valid_dump))

        assert fake_runtime.containers == {}
        assert ("stop", CONTAINER) in fake_runtime.calls
        assert ("remove", CONTAINER) in fake_runtime.calls

    def test_dump_cleanup_failure_is_not_fatal(self, orchestrator, fake_runtime, valid_dump, ports_free, no_sleep, caplog):
        fake_runtime.exec_handler = failing_on("rm", output="permission denied")

        result = orchestrator.create(make_request(valid_dump))

        assert result.container_name == CONTAINER
        assert CONTAINER in fake_runtime.containers
        assert "Could not remove /tmp/dump.sql" in caplog.text


class TestStartStop:
    """Test start/stop idempotency."""

    def test_start_absent_fails(self, orchestrator):
        with pytest.raises(ContainerNotFoundError):
            orchestrator.start("dummy-local_missing")

    def test_stop_absent_fails(self, orchestrator):
        with pytest.raises(ContainerNotFoundError):
            orchestrator.stop("dummy-local_missing")

    def test_start_stopped_container(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER, running=False)
        assert orchestrator.start(CONTAINER) is LifecycleNotice.STARTED
        assert fake_runtime.is_running(CONTAINER)

    def test_start_running_container_is_noop(self, orchestrator, fake_runtime):
        """Test that starting a running container reports a notice and mutates nothing."""
        fake_runtime.add(CONTAINER, running=True)
        assert orchestrator.start(CONTAINER) is LifecycleNotice.ALREADY_RUNNING
        assert fake_runtime.mutations() == []

    def test_stop_running_container(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER, running=True)
        assert orchestrator.stop(CONTAINER) is LifecycleNotice.STOPPED
        assert not fake_runtime.is_running(CONTAINER)

    def test_stop_stopped_container_is_noop(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER, running=False)
        assert orchestrator.stop(CONTAINER) is LifecycleNotice.ALREADY_STOPPED
        assert fake_runtime.mutations() == []

    def test_repeated_calls_converge(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER, running=False)
        orchestrator.start(CONTAINER)
        assert orchestrator.start(CONTAINER) is LifecycleNotice.ALREADY_RUNNING
        orchestrator.stop(CONTAINER)
        assert orchestrator.stop(CONTAINER) is LifecycleNotice.ALREADY_STOPPED


class TestRemove:
    """Test container removal."""

    def test_remove_absent_fails(self, orchestrator):
        with pytest.raises(ContainerNotFoundError):
            orchestrator.remove("dummy-local_missing")

    def test_remove_running_stops_first(self, orchestrator, fake_runtime):
        """Test that a running container is stopped, then removed."""
        fake_runtime.add(CONTAINER, running=True)

        assert orchestrator.remove(CONTAINER) is LifecycleNotice.REMOVED

        assert fake_runtime.mutations() == [("stop", CONTAINER), ("remove", CONTAINER)]
        assert fake_runtime.exists(CONTAINER) is False

    def test_remove_stopped_skips_stop(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER, running=False)
        orchestrator.remove(CONTAINER)
        assert fake_runtime.mutations() == [("remove", CONTAINER)]

    def test_remove_proceeds_when_stop_fails(self, orchestrator, fake_runtime, caplog):
        fake_runtime.add(CONTAINER, running=True)
        fake_runtime.fail_on["stop"] = RuntimeCommandError("timeout")

        orchestrator.remove(CONTAINER)

        assert not fake_runtime.exists(CONTAINER)
        assert "Could not stop" in caplog.text

    def test_remove_twice_fails(self, orchestrator, fake_runtime):
        fake_runtime.add(CONTAINER)
        orchestrator.remove(CONTAINER)
        with pytest.raises(ContainerNotFoundError):
            orchestrator.remove(CONTAINER)


class TestList:
    """Test container listing."""

    def test_list_only_prefixed_containers(self, orchestrator, fake_runtime):
        fake_runtime.add("dummy-local_a", running=True, ports=["0.0.0.0:5433->5432/tcp"])
        fake_runtime.add("dummy-local_b")
        fake_runtime.add("unrelated_redis", running=True)
        fake_runtime.add("dummy-localhost_x", running=True)

        summaries = orchestrator.list()

        assert [s.name for s in summaries] == ["dummy-local_a", "dummy-local_b"]
        assert summaries[0].is_running
        assert summaries[0].ports == ["0.0.0.0:5433->5432/tcp"]
        assert ("list", "dummy-local_") in fake_runtime.calls

    def test_list_empty(self, orchestrator):
        assert orchestrator.list() == []
