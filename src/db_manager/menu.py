"""
Interactive menu for the feature database manager.

Collects input with inquirer and hands validated requests to the
orchestrator. Errors are reported and the menu keeps running until the user
exits or cancels.
"""

import logging
from typing import TYPE_CHECKING

from rich.console import Console

from .commands import print_container_table, print_create_result, print_notice
from .exceptions import DbManagerError
from .orchestrator import DatabaseOrchestrator
from .prompt import (
    MENU_CREATE,
    MENU_EXIT,
    MENU_LIST,
    MENU_REMOVE,
    MENU_START,
    MENU_STOP,
    confirm_removal,
    prompt_container_choice,
    prompt_create_request,
    prompt_menu_action,
)

if TYPE_CHECKING:
    from .commands import RuntimeFactory
    from .config import ManagerConfig
    from .env import EnvOverrides

logger = logging.getLogger(__name__)


def run_menu(
    console: Console,
    config: "ManagerConfig",
    overrides: "EnvOverrides",
    runtime_factory: "RuntimeFactory",
) -> None:
    """
    Run the interactive menu loop.

    Args:
        console: Rich Console instance for formatted output
        config: Resolved manager configuration
        overrides: Environment overrides that suppress create prompts
        runtime_factory: Callable returning a ContainerRuntime context manager
    """
    while True:
        console.rule("DB Manager Menu")
        action = prompt_menu_action()
        if action is None or action == MENU_EXIT:
            console.print("Exiting DB-Manager. Goodbye!", style="bold green")
            return

        try:
            _run_action(action, console, config, overrides, runtime_factory)
        except DbManagerError as e:
            logger.debug("Menu action %s failed", action, exc_info=True)
            console.print(f"Error: {e}", style="bold red")


def _run_action(
    action: str,
    console: Console,
    config: "ManagerConfig",
    overrides: "EnvOverrides",
    runtime_factory: "RuntimeFactory",
) -> None:
    if action == MENU_CREATE:
        request = prompt_create_request(config, overrides)
        if request is None:
            console.print("Operation cancelled.")
            return
        with runtime_factory() as runtime:
            result = DatabaseOrchestrator(runtime, config, console).create(request)
        print_create_result(console, result)
        return

    with runtime_factory() as runtime:
        orchestrator = DatabaseOrchestrator(runtime, config, console)
        containers = orchestrator.list()

        if action == MENU_LIST:
            print_container_table(console, containers)
            return

        if action == MENU_START:
            candidates = [c for c in containers if not c.is_running]
            empty_message = "No stopped containers available to start."
            prompt_message = "Select a container to start"
        elif action == MENU_STOP:
            candidates = [c for c in containers if c.is_running]
            empty_message = "No running containers available to stop."
            prompt_message = "Select a container to stop"
        elif action == MENU_REMOVE:
            candidates = containers
            empty_message = "No containers available to remove."
            prompt_message = "Select a container to remove"
        else:
            raise ValueError(f"Unknown menu action {action}")

        if not candidates:
            console.print(empty_message, style="red")
            return

        name = prompt_container_choice(candidates, prompt_message)
        if not name:
            console.print("Operation cancelled.")
            return

        if action == MENU_START:
            notice = orchestrator.start(name)
        elif action == MENU_STOP:
            notice = orchestrator.stop(name)
        else:
            if not confirm_removal(name):
                console.print("Removal cancelled.")
                return
            notice = orchestrator.remove(name)

    print_notice(console, name, notice)
