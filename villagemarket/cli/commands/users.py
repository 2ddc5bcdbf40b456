"""CLI commands for account administration (talk to the database directly)."""

from __future__ import annotations

import asyncio

import click

from villagemarket.cli.output import console, users_table


async def _create_admin(name: str, username: str, password: str) -> tuple[str, bool]:
    from sqlalchemy import select

    from villagemarket.core.auth import hash_password
    from villagemarket.core.database import close_engine, get_session_factory
    from villagemarket.models.user import User, UserRole

    try:
        async with get_session_factory()() as session:
            user = (
                await session.execute(select(User).where(User.username == username))
            ).scalar_one_or_none()
            created = user is None
            if created:
                user = User(name=name, username=username, profile_complete=True)
                session.add(user)
            user.role = UserRole.ADMIN.value
            user.is_active = True
            user.password_hash = hash_password(password)
            await session.commit()
            return str(user.id), created
    finally:
        await close_engine()


async def _list_users(role: str | None):
    from sqlalchemy import select

    from villagemarket.core.database import close_engine, get_session_factory
    from villagemarket.models.user import User

    try:
        async with get_session_factory()() as session:
            query = select(User).order_by(User.created_at)
            if role:
                query = query.where(User.role == role)
            return list((await session.execute(query)).scalars().all())
    finally:
        await close_engine()


@click.group("users")
def users_cmd() -> None:
    """Manage marketplace accounts."""


@users_cmd.command("create-admin")
@click.option("--username", required=True, help="Login name (usually the house number)")
@click.option("--name", default="Administrator", show_default=True, help="Display name")
@click.password_option(help="Password for the account")
def create_admin(username: str, name: str, password: str) -> None:
    """Create an ADMIN account, or promote and reset an existing one."""
    try:
        user_id, created = asyncio.run(_create_admin(name, username, password))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    verb = "Created" if created else "Promoted"
    console.print(f"[green]{verb} admin[/green] {username!r} [dim]({user_id})[/dim]")


@users_cmd.command("list")
@click.option(
    "--role",
    type=click.Choice(["CUSTOMER", "VENDOR", "ADMIN"]),
    default=None,
    help="Only show this role",
)
def users_list(role: str | None) -> None:
    """List accounts."""
    try:
        users = asyncio.run(_list_users(role))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    console.print(users_table(users))
