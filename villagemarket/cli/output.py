"""Rich output helpers — account and shop tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console()


def role_style(role: str) -> str:
    return {
        "ADMIN": "bold red",
        "VENDOR": "yellow",
        "CUSTOMER": "green",
    }.get(role, "white")


def fmt_date(value: datetime | str | None) -> str:
    if not value:
        return "—"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return dt.strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


def _active(flag: bool | None) -> Text:
    return Text("✓", style="green") if flag else Text("✗", style="dim")


def users_table(users: list[Any]) -> Table:
    """Table of User rows (ORM objects)."""
    table = Table(
        title=f"Users ({len(users)})",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Username", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("House no.", no_wrap=True)
    table.add_column("Role")
    table.add_column("LINE", justify="center")
    table.add_column("Profile", justify="center")
    table.add_column("Active", justify="center")
    table.add_column("Created", style="dim")

    for u in users:
        table.add_row(
            u.username or "—",
            u.name,
            u.house_number or "—",
            Text(u.role, style=role_style(u.role)),
            Text("✓", style="green") if u.external_id else Text("—", style="dim"),
            Text("complete", style="green") if u.profile_complete else Text("pending", style="yellow"),
            _active(u.is_active),
            fmt_date(u.created_at),
        )
    return table


def shops_table(items: list[dict[str, Any]]) -> Table:
    """Table of shops as returned by GET /api/shops."""
    table = Table(
        title=f"Shops ({len(items)})",
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("House no.")
    table.add_column("Owner")
    table.add_column("Active", justify="center")

    for s in items:
        owner = s.get("owner") or {}
        table.add_row(
            str(s.get("id", ""))[:8] + "…",
            s.get("name", ""),
            s.get("houseNumber") or "—",
            owner.get("name") or "—",
            _active(s.get("isActive")),
        )
    return table
