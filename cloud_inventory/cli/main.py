"""
Main CLI entry point for cloud inventory.

Provides the ``cloud-inventory`` command group.
"""

import functools
import logging
import sys
from typing import Dict, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler

from cloud_inventory import __version__
from cloud_inventory.cli.display import InventoryDisplay
from cloud_inventory.core.config import ConfigManager, example_ini_config, example_yaml_config
from cloud_inventory.core.context import Context
from cloud_inventory.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InventoryError,
    OperationCancelled,
    ProviderError,
    ResourceNotFoundError,
    ValidationError,
)
from cloud_inventory.services.orchestrator import InventoryOrchestrator
from cloud_inventory.services.registry import OPERATION_CLASSES


console = Console()
err_console = Console(stderr=True)

# Exit codes for different error types
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_PROVIDER_ERROR = 4
EXIT_NOT_FOUND = 5
EXIT_USER_CANCELLED = 130


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        handlers=[handler],
        force=True
    )
    # botocore is very chatty at debug level
    logging.getLogger('botocore').setLevel(logging.WARNING)


def _parse_tags(ctx: click.Context, param: click.Parameter, values: Tuple[str, ...]) -> Dict[str, str]:
    tags = {}
    for value in values:
        key, sep, tag_value = value.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{value}'")
        tags[key] = tag_value
    return tags


def handle_errors(command):
    """Translate inventory errors into messages and exit codes."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except (KeyboardInterrupt, OperationCancelled) as e:
            reason = e.message if isinstance(e, OperationCancelled) else "Operation cancelled by user"
            err_console.print(f"\n⚠️  [yellow]{reason}[/yellow]")
            sys.exit(EXIT_USER_CANCELLED)
        except ConfigurationError as e:
            err_console.print(f"❌ [red]Configuration error: {e}[/red]")
            if e.details:
                err_console.print(f"[dim]{e.details}[/dim]")
            sys.exit(EXIT_CONFIG_ERROR)
        except AuthenticationError as e:
            err_console.print(f"❌ [red]Authentication error: {e}[/red]")
            sys.exit(EXIT_AUTH_ERROR)
        except ResourceNotFoundError as e:
            err_console.print(f"❌ [red]{e}[/red]")
            sys.exit(EXIT_NOT_FOUND)
        except ProviderError as e:
            err_console.print(f"❌ [red]Provider error: {e}[/red]")
            sys.exit(EXIT_PROVIDER_ERROR)
        except InventoryError as e:
            err_console.print(f"❌ [red]{e}[/red]")
            sys.exit(EXIT_GENERAL_ERROR)

    return wrapper


config_option = click.option(
    "--config", "-c", "config_path",
    required=True,
    envvar="CLOUD_INVENTORY_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to a YAML or INI configuration file",
)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool = False) -> None:
    """
    Cloud Inventory - list and tag-filter cloud resources across accounts and regions.
    """
    _configure_logging(verbose)


@main.command(name="list")
@config_option
@click.option("--type", "-t", "resource_types", multiple=True, help="Resource type to list (repeatable)")
@click.option("--tag", "tags", multiple=True, callback=_parse_tags, help="Required tag as KEY=VALUE (repeatable)")
@click.option("--account", "-a", "account_names", multiple=True, help="Only inventory these accounts (repeatable)")
@click.option("--max-workers", type=click.IntRange(1, 64), help="Concurrent provider calls")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Give up after this many seconds")
@click.option("--output", "-o", type=click.Choice(["table", "json"]), default="table", show_default=True)
@handle_errors
def list_command(
    config_path: str,
    resource_types: Tuple[str, ...],
    tags: Dict[str, str],
    account_names: Tuple[str, ...],
    max_workers: Optional[int],
    timeout: Optional[float],
    output: str,
) -> None:
    """List resources from every enabled account and region."""
    config_manager = ConfigManager(config_path)
    orchestrator = InventoryOrchestrator.from_config(config_manager, max_workers=max_workers)

    if account_names:
        selected = {name: config_manager.get_account(name) for name in account_names}
        unknown = [name for name, account in selected.items() if account is None]
        if unknown:
            raise ConfigurationError(f"Unknown account(s): {', '.join(unknown)}")
        disabled = [name for name, account in selected.items() if not account.enabled]
        if disabled:
            raise ConfigurationError(
                f"Account(s) disabled in configuration: {', '.join(disabled)}",
                details="Set 'enabled: true' on the account to include it in an inventory run"
            )
        orchestrator.accounts = [a for a in orchestrator.accounts if a.name in account_names]

    wanted_types = list(resource_types) or config_manager.get_resource_types() or None
    ctx = Context(timeout=timeout)

    with console.status("🔍 Collecting resources...", spinner="dots"):
        result = orchestrator.collect(ctx, wanted_types, tags)

    display = InventoryDisplay(console)
    if output == "json":
        display.show_result_json(result)
    else:
        display.show_result(result)

    if result.errors:
        sys.exit(EXIT_PROVIDER_ERROR)


@main.command()
@config_option
@click.option("--account", "-a", "account_name", help="Account name (defaults to the first enabled account)")
@click.option("--region", "-r", help="Region (defaults to the account's first region)")
@click.option("--type", "-t", "resource_type", required=True, help="Resource type")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Give up after this many seconds")
@click.argument("resource_id")
@handle_errors
def show(
    config_path: str,
    account_name: Optional[str],
    region: Optional[str],
    resource_type: str,
    timeout: Optional[float],
    resource_id: str,
) -> None:
    """Show one resource and its current tags."""
    config_manager = ConfigManager(config_path)
    account = config_manager.get_account(account_name) if account_name else config_manager.get_default_account()
    if account is None:
        raise ConfigurationError(
            f"Account not found: {account_name}" if account_name else "No enabled account configured"
        )

    orchestrator = InventoryOrchestrator.from_config(config_manager)
    manager = orchestrator.get_resource_manager(account)
    operation = manager.get_operation(resource_type)
    if operation is None:
        raise ValidationError(
            f"Unsupported resource type: {resource_type}. "
            f"Supported: {', '.join(sorted(manager.list_resource_types()))}"
        )

    region = region or orchestrator.regions_for(account)[0]
    ctx = Context(timeout=timeout)
    resource = operation.get_resource_by_id(ctx, region, resource_id)
    tags = operation.get_resource_tags(ctx, region, resource_id)
    InventoryDisplay(console).show_resource(resource, tags)


@main.command()
def types() -> None:
    """List the supported resource types."""
    InventoryDisplay(console).show_resource_types(OPERATION_CLASSES)


@main.command(name="example-config")
@click.option("--format", "config_format", type=click.Choice(["yaml", "ini"]), default="yaml", show_default=True)
def example_config(config_format: str) -> None:
    """Print a configuration template."""
    click.echo(example_ini_config() if config_format == "ini" else example_yaml_config(), nl=False)


if __name__ == "__main__":
    main()
