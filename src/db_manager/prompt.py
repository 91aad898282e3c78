from typing import TYPE_CHECKING

import inquirer

from . import naming
from .exceptions import ValidationError
from .models import CreateRequest
from .ports import validate_port

if TYPE_CHECKING:
    from .config import ManagerConfig
    from .env import EnvOverrides
    from .models import ContainerSummary


MENU_CREATE = "Create Container"
MENU_START = "Start Container"
MENU_STOP = "Stop Container"
MENU_REMOVE = "Remove Container"
MENU_LIST = "List Containers"
MENU_EXIT = "Exit"
MENU_CHOICES = [MENU_CREATE, MENU_START, MENU_STOP, MENU_REMOVE, MENU_LIST, MENU_EXIT]


def prompt_user_choice(
    choices: list[str], prompt_message: str = "Please select an option:"
) -> str | None:
    """
    Prompt user to select from a list of choices using inquirer.

    Args:
        choices: List of strings to choose from
        prompt_message: Message to display to user

    Returns:
        Selected choice string, or None if cancelled
    """
    if not choices:
        return None

    try:
        questions = [
            inquirer.List(
                "choice",
                message=prompt_message,
                choices=choices,
            ),
        ]
        answers = inquirer.prompt(questions)
        return answers["choice"] if answers else None

    except KeyboardInterrupt:
        return None


def prompt_menu_action() -> str | None:
    """Ask which menu action to run; None means the user cancelled."""
    return prompt_user_choice(MENU_CHOICES, "DB Manager Menu")


def prompt_container_choice(
    containers: list["ContainerSummary"], prompt_message: str
) -> str | None:
    """
    Let the user pick one container from a listing.

    Args:
        containers: Candidate containers
        prompt_message: Message to display to user

    Returns:
        Name of the selected container, or None if cancelled or nothing to choose
    """
    labels = {
        f"{c.name} - {'Running' if c.is_running else 'Stopped'} - Ports: {', '.join(c.ports) or '-'}": c.name
        for c in containers
    }
    choice = prompt_user_choice(list(labels), prompt_message)
    return labels[choice] if choice else None


def confirm_removal(container_name: str) -> bool:
    """Ask for confirmation before removing a container; defaults to No."""
    try:
        answers = inquirer.prompt(
            [
                inquirer.Confirm(
                    "confirm",
                    message=f"Are you sure you want to remove the container '{container_name}'?",
                    default=False,
                )
            ]
        )
    except KeyboardInterrupt:
        return False
    return bool(answers and answers["confirm"])


def prompt_create_request(
    config: "ManagerConfig", overrides: "EnvOverrides"
) -> CreateRequest | None:
    """
    Collect and validate everything needed to create a feature database.

    Database name, user and password are only asked for when they were not
    supplied through the environment; supplied values are used silently.

    Args:
        config: Resolved configuration providing the defaults shown
        overrides: Environment overrides that suppress the matching prompts

    Returns:
        CreateRequest ready for the orchestrator, or None if cancelled

    Raises:
        ValidationError: If the feature name is empty, the dump file does not
                         exist or the port is out of range
    """
    questions = [
        inquirer.Text("feature", message="[required] Enter Feature Name (e.g., feature-login)"),
        inquirer.Text(
            "dump_path",
            message="Enter SQL Dump File Path",
            default=config.default_dump_path,
        ),
        inquirer.Text("db_suffix", message="Enter Database Suffix (optional)"),
        inquirer.Text(
            "port",
            message="Enter Host Port for PostgreSQL",
            default=str(config.default_port),
        ),
    ]
    if not overrides.database_name:
        questions.append(
            inquirer.Text("db_name", message="Enter Database Name", default=config.base_db_name)
        )
    if not overrides.database_user:
        questions.append(
            inquirer.Text("user", message="Enter Database User", default=config.db_user)
        )
    if not overrides.database_password:
        questions.append(
            inquirer.Password("password", message="Enter Database Password (leave empty for default)")
        )

    try:
        answers = inquirer.prompt(questions)
    except KeyboardInterrupt:
        return None
    if not answers:
        return None

    feature = (answers.get("feature") or "").strip()
    if not naming.normalize(feature):
        raise ValidationError("Feature name is required.")

    dump_path = config.resolve_dump_path((answers.get("dump_path") or "").strip())
    if not dump_path.is_file():
        raise ValidationError(f"File '{dump_path}' does not exist.")

    port = validate_port(answers.get("port") or config.default_port)

    # The menu keeps suffixes free of separators, e.g. "v2_orders" becomes "v2orders".
    db_suffix = naming.normalize(answers.get("db_suffix") or "").replace("_", "")

    return CreateRequest(
        feature=feature,
        dump_path=dump_path,
        port=port,
        db_suffix=db_suffix,
        user=answers.get("user") or config.db_user,
        password=answers.get("password") or config.db_password,
        base_db_name=answers.get("db_name") or None,
    )
