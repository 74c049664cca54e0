"""Rich rendering of inventory results."""

import json
from typing import Iterable, Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cloud_inventory.services.models import CloudResource, InventoryResult


def format_tags(tags: Mapping[str, str]) -> str:
    return ", ".join(f"{key}={value}" for key, value in sorted(tags.items()))


class InventoryDisplay:
    """Prints inventory results to a Rich console."""

    def __init__(self, console: Console):
        self.console = console

    def show_result(self, result: InventoryResult) -> None:
        """Print the collected resources as a table, followed by any failures."""
        if not result.items:
            self.console.print("[yellow]No resources found.[/yellow]")
        else:
            table = Table(title=f"Inventory ({len(result.items)} resources)")
            table.add_column("Account", style="cyan")
            table.add_column("Region")
            table.add_column("Type", style="magenta")
            table.add_column("ID", style="green")
            table.add_column("Name")
            table.add_column("Tags", style="dim")

            for item in result.sorted_items():
                resource = item.resource
                table.add_row(
                    item.account,
                    resource.region_id,
                    resource.resource_type,
                    resource.resource_id,
                    resource.resource_name,
                    format_tags(resource.tags)
                )
            self.console.print(table)

        for account, resource_type in result.unsupported:
            self.console.print(f"[dim]Skipped unsupported type {resource_type} for account {account}[/dim]")

        if result.errors:
            self.console.print()
            self.console.print(f"⚠️  [yellow]{len(result.errors)} collections failed:[/yellow]")
            for error in result.errors:
                self.console.print(f"  • [red]{error.message}[/red]")

    def show_result_json(self, result: InventoryResult) -> None:
        """Print the result as JSON."""
        payload = {
            'resources': [
                dict(item.resource.to_dict(), account=item.account)
                for item in result.sorted_items()
            ],
            'summary': result.get_summary(),
        }
        self.console.print_json(json.dumps(payload, default=str))

    def show_resource(self, resource: CloudResource, tags: Mapping[str, str]) -> None:
        """Print one resource with its current tags."""
        lines = [
            f"{key}: {value}"
            for key, value in resource.to_dict().items()
            if key != 'tags'
        ]
        lines.append(f"tags: {format_tags(tags) or '-'}")
        self.console.print(Panel("\n".join(lines), title=f"{resource.resource_type} {resource.resource_id}", expand=False))

    def show_resource_types(self, resource_types: Iterable[str]) -> None:
        table = Table(title="Supported resource types")
        table.add_column("Type", style="magenta")
        for resource_type in sorted(resource_types):
            table.add_row(resource_type)
        self.console.print(table)
