"""Test project command"""
from pathlib import Path

from rich.console import Console

from actorkit.backends import run_tests
from actorkit.config import load_project_config
from actorkit.errors import cli_error_handler

console = Console()


@cli_error_handler
def run_project_tests(config_path: Path | None = None):
    """Run the language toolchain's lint and test step"""
    config = load_project_config(config_path)
    console.print(f"[bold]Testing {config.common.name} ({config.language.language})...[/bold]")
    result = run_tests(config.language, config.common)
    console.print(f"[green]✓ {result}[/green]")
