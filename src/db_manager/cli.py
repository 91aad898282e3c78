"""
CLI infrastructure for the feature database manager.

Contains command definitions, registry, protocols and the argument parser.
"""

import argparse
from typing import NamedTuple, Protocol


class CommandHandler(Protocol):
    """Protocol for command handler functions."""

    def __call__(self, _args: argparse.Namespace) -> None: ...


class CommandDefinition(NamedTuple):
    """Definition of a CLI command."""

    name: str
    help_text: str
    handler: CommandHandler


class CommandRegistry:
    """Registry for CLI command handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}

    def register(self, command: str, handler: CommandHandler) -> None:
        """Register a command handler."""
        if command in self._handlers:
            raise ValueError(f"Command '{command}' is already registered")
        self._handlers[command] = handler

    def get_handler(self, command: str) -> CommandHandler:
        """Get a handler for the given command."""
        if command not in self._handlers:
            available = ", ".join(self.get_available_commands())
            raise ValueError(
                f"Unknown command '{command}'. Available commands: {available}"
            )
        return self._handlers[command]

    def get_available_commands(self) -> list[str]:
        """Get list of available commands."""
        return sorted(self._handlers.keys())

    def is_registered(self, command: str) -> bool:
        """Check if a command is registered."""
        return command in self._handlers


def _add_feature_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n",
        "--name",
        dest="feature",
        required=True,
        help="Feature name, e.g. feature-login",
    )


def build_parser(
    definitions: list[CommandDefinition], defaults: dict[str, str] | None = None
) -> argparse.ArgumentParser:
    """
    Build the argument parser for the given commands.

    Args:
        definitions: Commands to expose as sub-commands
        defaults: Default values shown in the create help (dump, port, user)

    Returns:
        argparse.ArgumentParser: Parser whose ``command`` attribute is None
                                 when no sub-command was given
    """
    defaults = defaults or {}
    parser = argparse.ArgumentParser(
        prog="db-manager",
        description="Create and manage local PostgreSQL containers for feature branches.",
        epilog="Run without a command to launch the interactive menu.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    for definition in definitions:
        sub = subparsers.add_parser(definition.name, help=definition.help_text)
        if definition.name == "create":
            _add_feature_argument(sub)
            sub.add_argument(
                "-f",
                "--file",
                dest="dump_file",
                help=f"Path to the .sql dump file (default: {defaults.get('dump_file', '-')})",
            )
            sub.add_argument(
                "-p",
                "--port",
                help=f"Host port for PostgreSQL (default: {defaults.get('port', '-')})",
            )
            sub.add_argument(
                "-d", "--db-suffix", dest="db_suffix", help="Database name suffix"
            )
            sub.add_argument(
                "-u",
                "--user",
                help=f"Database user (default: {defaults.get('user', '-')})",
            )
            sub.add_argument(
                "-w", "--password", help="Database password"
            )
        elif definition.name in ("start", "stop", "remove"):
            _add_feature_argument(sub)

    return parser
