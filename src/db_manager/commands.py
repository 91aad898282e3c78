"""
Command handlers for the feature database manager.

Each handler validates its arguments before touching the container runtime,
then delegates to DatabaseOrchestrator and renders the outcome.
"""

from argparse import Namespace
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Callable

from rich.console import Console
from rich.table import Table

from . import naming
from .exceptions import ValidationError
from .models import ContainerSummary, CreateRequest, CreateResult, LifecycleNotice
from .orchestrator import DatabaseOrchestrator
from .ports import validate_port

if TYPE_CHECKING:
    from .config import ManagerConfig
    from .env import EnvOverrides
    from .runtime import ContainerRuntime

RuntimeFactory = Callable[[], AbstractContextManager["ContainerRuntime"]]

_NOTICE_STYLES = {
    LifecycleNotice.STARTED: ("Container '{name}' started.", "bold green"),
    LifecycleNotice.ALREADY_RUNNING: ("Notice: Container '{name}' is already running.", "yellow"),
    LifecycleNotice.STOPPED: ("Container '{name}' stopped.", "bold green"),
    LifecycleNotice.ALREADY_STOPPED: ("Notice: Container '{name}' is not running.", "yellow"),
    LifecycleNotice.REMOVED: ("Container '{name}' has been removed.", "bold green"),
}


def print_notice(console: Console, container_name: str, notice: LifecycleNotice) -> None:
    """Print the outcome of start/stop/remove."""
    message, style = _NOTICE_STYLES[notice]
    console.print(message.format(name=container_name), style=style)


def print_container_table(console: Console, containers: list[ContainerSummary]) -> None:
    """Render the managed containers as a table; running rows are green."""
    if not containers:
        console.print("No containers found.", style="red")
        return

    table = Table(title="Managed PostgreSQL containers")
    table.add_column("NAME", no_wrap=True)
    table.add_column("STATUS")
    table.add_column("PORTS")
    for container in containers:
        table.add_row(
            container.name,
            "Running" if container.is_running else "Stopped",
            ", ".join(container.ports),
            style="green" if container.is_running else None,
        )
    console.print(table)


def print_create_result(console: Console, result: CreateResult) -> None:
    console.print(f"   Container: {result.container_name}")
    console.print(f"   Database:  {result.database_name}")
    console.print(f"   Port:      {result.port}")
    console.print(f"   User:      {result.user}")


class Commands:
    """
    Handlers for the create, start, stop, remove, list and menu commands.

    Args:
        console: Rich Console instance for formatted output
        config: Resolved manager configuration
        overrides: Environment overrides, used by the interactive menu
        runtime_factory: Callable returning a context manager that yields a
                         ContainerRuntime (DockerRuntime in production)
    """

    def __init__(
        self,
        console: Console,
        config: "ManagerConfig",
        overrides: "EnvOverrides",
        runtime_factory: RuntimeFactory,
    ) -> None:
        self.console = console
        self.config = config
        self.overrides = overrides
        self.runtime_factory = runtime_factory

    def handle_create_command(self, args: Namespace) -> None:
        """
        Handle the create command.

        Raises:
            ValidationError: If the feature name is empty, the dump file does
                             not exist or the port is invalid
        """
        request = self.build_create_request(args)
        with self.runtime_factory() as runtime:
            orchestrator = DatabaseOrchestrator(runtime, self.config, self.console)
            result = orchestrator.create(request)
        print_create_result(self.console, result)

    def handle_start_command(self, args: Namespace) -> None:
        name = self.container_name_for(args.feature)
        with self.runtime_factory() as runtime:
            notice = DatabaseOrchestrator(runtime, self.config, self.console).start(name)
        print_notice(self.console, name, notice)

    def handle_stop_command(self, args: Namespace) -> None:
        name = self.container_name_for(args.feature)
        with self.runtime_factory() as runtime:
            notice = DatabaseOrchestrator(runtime, self.config, self.console).stop(name)
        print_notice(self.console, name, notice)

    def handle_remove_command(self, args: Namespace) -> None:
        name = self.container_name_for(args.feature)
        with self.runtime_factory() as runtime:
            notice = DatabaseOrchestrator(runtime, self.config, self.console).remove(name)
        print_notice(self.console, name, notice)

    def handle_list_command(self, _args: Namespace) -> None:
        with self.runtime_factory() as runtime:
            containers = DatabaseOrchestrator(runtime, self.config, self.console).list()
        print_container_table(self.console, containers)

    def handle_menu_command(self, _args: Namespace) -> None:
        from .menu import run_menu

        run_menu(self.console, self.config, self.overrides, self.runtime_factory)

    def container_name_for(self, feature: str | None) -> str:
        """
        Re-derive a container name from a feature name.

        Raises:
            ValidationError: If the feature name normalizes to nothing
        """
        if not feature or not naming.normalize(feature):
            raise ValidationError("Feature name (-n) is required.")
        return naming.container_name(self.config, feature)

    def build_create_request(self, args: Namespace) -> CreateRequest:
        """
        Turn create arguments into a CreateRequest, applying config defaults.

        Raises:
            ValidationError: If any argument is invalid
        """
        feature = (args.feature or "").strip()
        if not naming.normalize(feature):
            raise ValidationError("Feature name (-n) is required for create.")

        dump_path = self.config.resolve_dump_path(args.dump_file)
        if not dump_path.is_file():
            raise ValidationError(f"File '{dump_path}' does not exist.")

        port = validate_port(args.port) if args.port else None

        return CreateRequest(
            feature=feature,
            dump_path=dump_path,
            port=port,
            db_suffix=naming.normalize(args.db_suffix or ""),
            user=args.user or self.config.db_user,
            password=args.password or self.config.db_password,
        )
