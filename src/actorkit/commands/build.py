"""Build and inspect commands"""
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from actorkit.config import load_project_config
from actorkit.errors import cli_error_handler
from actorkit.exceptions import UnsupportedProjectKind
from actorkit.pipeline import BuildOptions, BuildPipeline
from actorkit.registry import RegistryClient
from actorkit.settings import Settings
from actorkit.signing import ClaimsSigner, read_embedded_claims

console = Console()


def make_pipeline(settings: Settings) -> BuildPipeline:
    return BuildPipeline(
        signer=ClaimsSigner(settings.keys_dir),
        pusher=RegistryClient(settings.registry_user, settings.registry_password),
    )


@cli_error_handler
def build_project(
    settings: Settings,
    config_path: Path | None = None,
    sign: bool = True,
    push: bool = False,
    push_to: str | None = None,
    insecure: bool | None = None,
    expires_in_days: int | None = None,
    not_before_days: int | None = None,
    output: str = "text",
):
    """Run the build pipeline for the project and report the outcome"""
    config = load_project_config(config_path)
    pipeline = make_pipeline(settings)
    options = BuildOptions(
        sign=sign,
        push=push,
        destination=push_to,
        insecure=insecure,
        expires_in_days=expires_in_days,
        not_before_days=not_before_days,
    )

    try:
        outcome = pipeline.run(config, options)
    except UnsupportedProjectKind as e:
        # Informational: other project kinds are built with their own tooling
        if output == "json":
            click.echo(json.dumps({"status": e.message, "kind": e.kind}))
        else:
            console.print(f"[yellow]{e.message}[/yellow]")
        return

    if output == "json":
        click.echo(json.dumps(outcome.to_dict()))
    elif outcome.push_error:
        console.print(f"[green]✓[/green] Signed module: [bold]{outcome.path}[/bold]")
        console.print(f"[red]✗ Push failed:[/red] {outcome.push_error}")
    else:
        lines = [f"[green]✓[/green] {outcome.status}", f"Module: [bold]{outcome.path}[/bold]"]
        if outcome.pushed_to:
            lines.append(f"Pushed to: [bold]{outcome.pushed_to}[/bold]")
        console.print(Panel.fit("\n".join(lines), border_style="green"))

    if outcome.push_error:
        sys.exit(1)


@cli_error_handler
def inspect_module(module: Path, output: str = "text"):
    """Print the verified claims embedded in a module"""
    claims = read_embedded_claims(module)
    if output == "json":
        click.echo(json.dumps(claims, indent=2))
        return

    wascap = claims.get("wascap", {})
    console.print(f"[bold]{wascap.get('name', module.name)}[/bold] v{wascap.get('ver', '?')} (rev {wascap.get('rev', 0)})")
    console.print(f"  Account: {claims.get('iss')}")
    console.print(f"  Module:  {claims.get('sub')}")
    console.print(f"  Hash:    {wascap.get('hash')}")
    if wascap.get("call_alias"):
        console.print(f"  Call alias: {wascap['call_alias']}")
    caps = wascap.get("caps") or []
    console.print(f"  Capabilities: {', '.join(caps) if caps else 'none'}")
