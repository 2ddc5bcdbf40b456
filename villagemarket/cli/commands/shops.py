"""CLI commands for browsing shops through the API."""

from __future__ import annotations

import click

from villagemarket.cli.output import console, shops_table


@click.group("shops")
def shops_cmd() -> None:
    """Browse shops."""


@shops_cmd.command("list")
@click.option("--owner", "owner_id", default=None, help="Only shops of this owner id")
@click.pass_context
def shops_list(ctx: click.Context, owner_id: str | None) -> None:
    """List active shops (or one owner's shops)."""
    import httpx

    api_url: str = ctx.obj["api_url"]
    params = {"ownerId": owner_id} if owner_id else {}
    try:
        r = httpx.get(f"{api_url}/api/shops", params=params, timeout=10)
        r.raise_for_status()
        console.print(shops_table(r.json()["items"]))
    except httpx.ConnectError:
        console.print(
            f"[red]Cannot connect to API at {api_url}.[/red] "
            "Is the server running? (villagemarket serve)"
        )
        raise SystemExit(1)
    except httpx.HTTPStatusError as e:
        console.print(f"[red]Error {e.response.status_code}:[/red] {e.response.text}")
        raise SystemExit(1)
