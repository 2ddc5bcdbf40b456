"""Village Market CLI entry point — `villagemarket` command group."""

from __future__ import annotations

from pathlib import Path

import click

from villagemarket.cli.commands.shops import shops_cmd
from villagemarket.cli.commands.users import users_cmd
from villagemarket.cli.output import console


@click.group()
@click.version_option(package_name="villagemarket")
@click.option(
    "--api-url",
    default="http://localhost:8000",
    envvar="VILLAGEMARKET_API_URL",
    show_default=True,
    help="Base URL of a running Village Market API (used by read-only commands)",
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """Village Market — accounts, shops and products for one village.

    \b
    First run:
      villagemarket migrate
      villagemarket users create-admin --username 0/1
      villagemarket serve --reload

    \b
    Day to day:
      villagemarket users list --role VENDOR
      villagemarket shops list
    """
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url.rstrip("/")


cli.add_command(users_cmd)
cli.add_command(shops_cmd)


@cli.command("serve")
@click.option("--host", default=None, help="Bind host [default: APP_HOST]")
@click.option("--port", type=int, default=None, help="Bind port [default: APP_PORT]")
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    from villagemarket.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "villagemarket.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("migrate")
@click.option("--revision", default="head", show_default=True, help="Target revision")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("alembic.ini"),
    show_default=True,
)
def migrate(revision: str, config_path: Path) -> None:
    """Apply database migrations (alembic upgrade)."""
    from alembic import command
    from alembic.config import Config

    if not config_path.exists():
        console.print(f"[red]Alembic config not found:[/red] {config_path}")
        raise SystemExit(1)
    command.upgrade(Config(str(config_path)), revision)
    console.print(f"[green]Database at revision[/green] {revision}")


if __name__ == "__main__":
    cli()
