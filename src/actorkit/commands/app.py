"""Application (wadm) commands"""
import asyncio
import json
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table

from actorkit.app import AppClient, connect
from actorkit.errors import cli_error_handler
from actorkit.exceptions import ConfigurationError
from actorkit.settings import Settings

console = Console()


def _run(settings: Settings, operation):
    """Connect to NATS, run one client operation, and close the connection."""

    async def runner():
        connection = await connect(settings.nats_url)
        try:
            return await operation(AppClient(connection, settings.lattice_prefix))
        finally:
            await connection.close()

    return asyncio.run(runner())


def _echo_json(response):
    if isinstance(response, list):
        click.echo(json.dumps([item.model_dump() for item in response]))
    else:
        click.echo(response.model_dump_json())


def _print_result(response, output: str):
    if output == "json":
        _echo_json(response)
    else:
        console.print(f"[green]{response.result}[/green]: {response.message}")


@cli_error_handler
def list_models(settings: Settings, output: str = "text"):
    """List application manifests"""
    models = _run(settings, lambda client: client.get_models())
    if output == "json":
        _echo_json(models)
        return
    if not models:
        console.print("[yellow]No applications found[/yellow]")
        return

    table = Table(title="Applications")
    table.add_column("Name", style="cyan")
    table.add_column("Latest Version")
    table.add_column("Deployed Version")
    table.add_column("Status")
    table.add_column("Description")
    for model in models:
        table.add_row(
            model.name,
            model.version,
            model.deployed_version or "N/A",
            model.status,
            model.description or "",
        )
    console.print(table)


@cli_error_handler
def get_model(settings: Settings, name: str, version: str | None = None, output: str = "text"):
    """Show an application manifest"""
    response = _run(settings, lambda client: client.get_model_details(name, version))
    if output == "json":
        _echo_json(response)
    elif response.manifest is None:
        console.print(f"[yellow]{response.result}[/yellow]: {response.message}")
    else:
        console.print(yaml.safe_dump(response.manifest, sort_keys=False))


@cli_error_handler
def model_history(settings: Settings, name: str, output: str = "text"):
    """Show the stored versions of an application"""
    response = _run(settings, lambda client: client.get_model_history(name))
    if output == "json":
        _echo_json(response)
        return

    table = Table(title=f"{name} versions")
    table.add_column("Version", style="cyan")
    table.add_column("Deployed")
    for info in response.versions:
        table.add_row(info.version, "yes" if info.deployed else "")
    console.print(table)


@cli_error_handler
def delete_model(
    settings: Settings, name: str, version: str | None = None, delete_all: bool = False, output: str = "text"
):
    """Delete an application version"""
    response = _run(settings, lambda client: client.delete_model_version(name, version, delete_all))
    _print_result(response, output)


@cli_error_handler
def put_model(settings: Settings, manifest_path: Path, output: str = "text"):
    """Store an application manifest"""
    manifest = manifest_path.read_text()
    try:
        parsed = yaml.safe_load(manifest)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{manifest_path} is not valid YAML or JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigurationError(f"{manifest_path} does not contain an application manifest")

    response = _run(settings, lambda client: client.put_model(manifest))
    if output == "json":
        _echo_json(response)
    else:
        console.print(
            f"[green]{response.result}[/green]: {response.message} "
            f"(version {response.current_version}, {response.total_versions} stored)"
        )


@cli_error_handler
def deploy_model(settings: Settings, name: str, version: str | None = None, output: str = "text"):
    """Deploy an application"""
    response = _run(settings, lambda client: client.deploy_model(name, version))
    _print_result(response, output)


@cli_error_handler
def undeploy_model(settings: Settings, name: str, non_destructive: bool = False, output: str = "text"):
    """Undeploy an application"""
    response = _run(settings, lambda client: client.undeploy_model(name, non_destructive))
    _print_result(response, output)
