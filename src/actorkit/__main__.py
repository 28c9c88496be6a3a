#!/usr/bin/env python3
"""
actorkit CLI - Main entry point
"""

from pathlib import Path

import click
from dotenv import load_dotenv

from actorkit import __version__
from actorkit.logging_config import setup_logging
from actorkit.settings import Settings

OUTPUT_FORMATS = click.Choice(["text", "json"])


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs and full tracebacks")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.pass_context
def cli(ctx, verbose, log_file):
    """actorkit - build, sign and deploy WebAssembly actors"""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    setup_logging(level="DEBUG" if verbose else "WARNING", log_file=log_file, include_timestamp=verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = Settings.load()


@cli.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to wasmcloud.toml or the project directory")
@click.option("--no-sign", is_flag=True, help="Build the module without signing it")
@click.option("--push", is_flag=True, help="Push the signed module to the configured registry")
@click.option("--push-to", help="Registry reference to push to, e.g. localhost:5000/hello:0.1.0 (implies --push)")
@click.option("--insecure/--secure", default=None, help="Use plain HTTP for the registry")
@click.option("--expires-in-days", type=int, help="Days until the signed claims expire")
@click.option("--not-before-days", type=int, help="Days until the signed claims become valid")
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def build(obj, config_path, no_sign, push, push_to, insecure, expires_in_days, not_before_days, output):
    """Build (and sign) the actor in the current project"""
    from actorkit.commands.build import build_project

    build_project(
        obj["settings"],
        config_path=config_path,
        sign=not no_sign,
        push=push or bool(push_to),
        push_to=push_to,
        insecure=insecure,
        expires_in_days=expires_in_days,
        not_before_days=not_before_days,
        output=output,
    )


@cli.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to wasmcloud.toml or the project directory")
def test(config_path):
    """Lint and test the current project with its language toolchain"""
    from actorkit.commands.test import run_project_tests

    run_project_tests(config_path)


@cli.command()
@click.argument("module", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
def inspect(module, output):
    """Show the claims embedded in a signed module"""
    from actorkit.commands.build import inspect_module

    inspect_module(module, output)


@cli.group()
@click.option("--lattice-prefix", "-x", help="Lattice to manage applications on")
@click.option("--nats-url", help="NATS server URL")
@click.pass_obj
def app(obj, lattice_prefix, nats_url):
    """Manage applications with wadm"""
    settings = obj["settings"]
    if lattice_prefix:
        settings.lattice_prefix = lattice_prefix
    if nats_url:
        settings.nats_url = nats_url


@app.command("list")
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_list(obj, output):
    """List application manifests"""
    from actorkit.commands.app import list_models

    list_models(obj["settings"], output)


@app.command("get")
@click.argument("name")
@click.argument("version", required=False)
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_get(obj, name, version, output):
    """Show an application manifest"""
    from actorkit.commands.app import get_model

    get_model(obj["settings"], name, version, output)


@app.command("history")
@click.argument("name")
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_history(obj, name, output):
    """Show the stored versions of an application"""
    from actorkit.commands.app import model_history

    model_history(obj["settings"], name, output)


@app.command("del")
@click.argument("name")
@click.argument("version", required=False)
@click.option("--delete-all", is_flag=True, help="Delete every version of the application")
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_del(obj, name, version, delete_all, output):
    """Delete an application version"""
    from actorkit.commands.app import delete_model

    delete_model(obj["settings"], name, version, delete_all, output)


@app.command("put")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_put(obj, manifest, output):
    """Store an application manifest"""
    from actorkit.commands.app import put_model

    put_model(obj["settings"], manifest, output)


@app.command("deploy")
@click.argument("name")
@click.argument("version", required=False)
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_deploy(obj, name, version, output):
    """Deploy an application"""
    from actorkit.commands.app import deploy_model

    deploy_model(obj["settings"], name, version, output)


@app.command("undeploy")
@click.argument("name")
@click.option("--non-destructive", is_flag=True, help="Keep the running resources")
@click.option("--output", "-o", type=OUTPUT_FORMATS, default="text", help="Output format")
@click.pass_obj
def app_undeploy(obj, name, non_destructive, output):
    """Undeploy an application"""
    from actorkit.commands.app import undeploy_model

    undeploy_model(obj["settings"], name, non_destructive, output)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
