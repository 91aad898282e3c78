#!/usr/bin/env python3
"""
Feature database manager CLI entry point.

This module provides the entry point for the installed package
(``db-manager``) and for ``python -m db_manager``.
"""

import logging
import sys
from functools import partial

from rich.console import Console

from .cli import CommandDefinition, CommandRegistry, build_parser
from .commands import Commands
from .config import ManagerConfig
from .docker import DockerRuntime
from .env import load_overrides
from .exceptions import DbManagerError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def command_definitions(commands: Commands) -> list[CommandDefinition]:
    return [
        CommandDefinition(
            "create",
            "Create a new PostgreSQL container for a feature.",
            commands.handle_create_command,
        ),
        CommandDefinition(
            "start", "Start an existing PostgreSQL container.", commands.handle_start_command
        ),
        CommandDefinition(
            "stop", "Stop a running PostgreSQL container.", commands.handle_stop_command
        ),
        CommandDefinition(
            "remove", "Remove a PostgreSQL container.", commands.handle_remove_command
        ),
        CommandDefinition(
            "list", "List all managed PostgreSQL containers.", commands.handle_list_command
        ),
        CommandDefinition(
            "menu", "Launch interactive menu.", commands.handle_menu_command
        ),
    ]


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, run one command (or the menu) and exit non-zero on failure."""
    console = Console()
    overrides = load_overrides()
    config = ManagerConfig.from_environment(overrides)
    commands = Commands(
        console, config, overrides, partial(DockerRuntime, timeout=config.runtime_timeout)
    )

    definitions = command_definitions(commands)
    registry = CommandRegistry()
    for definition in definitions:
        registry.register(definition.name, definition.handler)

    parser = build_parser(
        definitions,
        defaults={
            "dump_file": config.default_dump_path,
            "port": str(config.default_port),
            "user": config.db_user,
        },
    )
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        handler = registry.get_handler(args.command or "menu")
        handler(args)
    except DbManagerError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        console.print(f"Error: {e}", style="bold red")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\nCancelled by user", style="yellow")
        sys.exit(130)


if __name__ == "__main__":
    main()
