"""Command Line Interface (CLI) for user interaction."""

from typing import List, TypeVar, Callable, Optional, Union

from rich.console import Console
from rich.table import Table
from rich.prompt import Prompt, Confirm, IntPrompt
from rich.panel import Panel
from rich.syntax import Syntax

import config
from core.models import Assignment, AutograderClass, Profile, Submission
from utils.logger import get_logger
from utils.error_handler import (APIError, AuthenticationError, BaseAutograderException,
                                 ContractError, NetworkError, UserCancelledError)

logger = get_logger()
console = Console()

T = TypeVar('T') # Generic type for selection items
WORKFLOW_STEPS = 5

def display_welcome():
    """Displays a welcome message."""
    console.print(Panel(
        "[bold green]Autograder Client[/bold green]",
        title="Welcome",
        border_style="blue"
    ))
    console.print("Browse classes, check who submitted, and download submitted files.")
    console.rule()

def display_farewell():
    """Displays a farewell message."""
    console.rule()
    console.print("[bold cyan]Done. Exiting.[/bold cyan]")

def display_error(error: Union[BaseAutograderException, str]):
    """Shows a failure; backend errors name the service and status they came from."""
    if isinstance(error, APIError):
        title = f"{(error.service or 'backend').capitalize()} request failed"
        lines = [str(error.args[0]) if error.args else "No details."]
        if isinstance(error, NetworkError):
            lines.append("[dim]No response was received; check your connection and SUPABASE_URL.[/dim]")
        elif error.status_code:
            lines.append(f"[dim]HTTP status {error.status_code}[/dim]")
    elif isinstance(error, AuthenticationError):
        title = "Sign-in failed"
        lines = [str(error)]
        if error.status_code:
            lines.append(f"[dim]HTTP status {error.status_code}[/dim]")
    elif isinstance(error, ContractError):
        title = "Not found"
        lines = [str(error)]
    else:
        title = "Error"
        lines = [str(error)]
    console.print(Panel("\n".join(lines), title=f"[bold red]{title}[/bold red]", border_style="red"))

def display_warning(message: str):
    console.print(f"[yellow]Warning:[/yellow] {message}")

def display_success(message: str):
    console.print(f"[green]Success:[/green] {message}")

def display_step(step_number: int, description: str, total: int = WORKFLOW_STEPS):
    console.print()
    console.rule(f"[bold blue]Step {step_number}/{total}[/bold blue] {description}", align="left")

def prompt_text(message: str, password: bool = False) -> str:
    """Asks the user for a line of text."""
    return Prompt.ask(message, password=password)

def prompt_for_selection(items: List[T], describe: Callable[[T], str], noun: str) -> Optional[T]:
    """Lists classes, assignments, students or files and asks for one of them by number.

    Args:
        items: What to choose from, in display order.
        describe: Renders one item as a table cell.
        noun: What the items are ("class", "student", ...), used in the
            table title and the prompt.

    Returns:
        The chosen item, or None when `items` is empty.

    Raises:
        UserCancelledError: If the user enters 0.
    """
    if not items:
        console.print(f"[yellow]There is no {noun} to choose from.[/yellow]")
        return None

    table = Table(title=f"{noun.capitalize()} options", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column(noun.capitalize(), style="cyan")
    numbers = [str(n) for n in range(1, len(items) + 1)]
    for number, item in zip(numbers, items):
        table.add_row(number, describe(item))
    console.print(table)

    choice = IntPrompt.ask(f"Which {noun}? (0 to cancel)", choices=["0"] + numbers, show_choices=False)
    if choice == 0:
        raise UserCancelledError(f"No {noun} chosen.")
    logger.debug(f"Chose {noun} {choice} of {len(items)}.")
    return items[choice - 1]

def confirm_action(message: str, default: bool = True) -> bool:
    return Confirm.ask(message, default=default)

def display_profiles(profiles: List[Profile], title: str):
    """Displays a table of profiles and how many classes each belongs to."""
    if not profiles:
        console.print(f"[yellow]{title}: none.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Profile ID", style="dim")
    table.add_column("Email", style="cyan")
    table.add_column("Classes", style="green")
    for profile in profiles:
        classes = "-" if profile.classes is None else ", ".join(c.name or c.id for c in profile.classes)
        table.add_row(profile.id, profile.email or "N/A", classes)
    console.print(table)

def display_submissions(submissions: List[Submission], title: str):
    """Displays a table of submitted file versions."""
    if not submissions:
        console.print(f"[yellow]{title}: none.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Version", style="bold")
    table.add_column("File", style="cyan")
    table.add_column("Submitted At", style="dim")
    for submission in submissions:
        table.add_row(f"v{submission.version}", submission.file_name, submission.created_at or "N/A")
    console.print(table)

def display_file(file_name: str, content: str):
    """Prints file contents with syntax highlighting picked from the file name."""
    lexer = Syntax.guess_lexer(file_name, code=content)
    console.print(Panel(Syntax(content, lexer, line_numbers=True), title=file_name, border_style="green"))
    if config.DEBUG:
        logger.debug(f"Displayed {len(content)} characters of {file_name}.")

# --- Display functions for specific items ---

def format_class_for_display(autograder_class: AutograderClass) -> str:
    return f"{autograder_class.name or 'Unnamed Class'} [{autograder_class.quarter or '-'}] (ID: {autograder_class.id})"

def format_assignment_for_display(assignment: Assignment) -> str:
    required = ", ".join(assignment.required_files) or "no required files"
    return f"{assignment.name or 'Untitled Assignment'} (ID: {assignment.id}; {required})"

def format_profile_for_display(profile: Profile) -> str:
    return f"{profile.email or 'Unknown'} (ID: {profile.id})"

def format_submission_for_display(submission: Submission) -> str:
    return f"{submission.file_name} v{submission.version}"
