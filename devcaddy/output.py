"""
Rich-powered console output for devcaddy.

Messages use rich markup, e.g. "[cyan]server[/cyan] for [yellow]*.example.dev[/yellow]".
"""

import sys

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console(force_terminal=None, legacy_windows=True)

# ASCII-safe icons when stdout is not a terminal
_USE_ASCII = not sys.stdout.isatty()

ICON_OK = "+" if _USE_ASCII else "✓"
ICON_ERROR = "x" if _USE_ASCII else "✗"
ICON_INFO = "i" if _USE_ASCII else "ℹ"
ICON_START = ">" if _USE_ASCII else "◐"
ICON_UPDATED = "~" if _USE_ASCII else "↻"

# (icon, color) per message kind
LINE_STYLES = {
    "success": (ICON_OK, "green"),
    "error": (ICON_ERROR, "red"),
    "warning": ("!", "yellow"),
    "info": (ICON_INFO, "blue"),
    "start": (ICON_START, "magenta"),
}

# Reconcile outcome -> (message kind, icon override, suffix)
ACTION_STYLES = {
    "created": ("success", None, ""),
    "updated": ("success", ICON_UPDATED, ""),
    "deleted": ("error", None, ""),
    "skipped": ("info", None, ", already present"),
}


def _line(kind: str, message: str, icon: str | None = None):
    default_icon, color = LINE_STYLES[kind]
    console.print(f"[{color}]{icon or default_icon}[/{color}] {message}")


def print_success(message: str):
    _line("success", message)


def print_error(message: str):
    _line("error", message)


def print_warning(message: str):
    _line("warning", message)


def print_info(message: str):
    _line("info", message)


def print_start(message: str):
    _line("start", message)


def print_action(message: str, action: str | None = None, verb: str | None = None):
    """
    Report a reconcile step.

    Without an action this announces the step ("Creating <message>...").
    With one it reports the outcome: created, updated, deleted or skipped.
    """
    if action is None:
        print_start(f"{verb or 'Creating'} {message}...")
        return

    kind, icon, suffix = ACTION_STYLES.get(action, ("info", None, ""))
    _line(kind, f"{action.capitalize()} {message}{suffix}", icon)


def failure_panel(title: str, lines: list[str]) -> Panel:
    content = Text("\n").join(Text(line) for line in lines if line)
    return Panel(content, title=title, border_style="red", box=box.ROUNDED)


def print_failure(title: str, lines: list[str]):
    console.print(failure_panel(title, lines))


def routes_table(routes: list[dict]) -> Table:
    """
    Create a table of the dev server routes inside the wildcard subroute.

    Args:
        routes: Route objects as returned by the admin API
    """
    table = Table(title="Dev server routes", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold")
    table.add_column("Hosts", style="cyan")
    table.add_column("Upstream", style="dim")

    for route in routes:
        hosts = [host for match in route.get("match", []) for host in match.get("host", [])]
        upstreams = [
            upstream.get("dial", "?")
            for handler in route.get("handle", [])
            for upstream in handler.get("upstreams", [])
        ]
        table.add_row(route.get("@id", "-"), ", ".join(hosts) or "-", ", ".join(upstreams) or "-")

    return table


def doctor_panel(checks: list[tuple[str, bool, str]]) -> Panel:
    """
    Create a diagnostic panel for devcaddy doctor.

    Args:
        checks: List of (check_name, passed, message)
    """
    lines = []
    for check_name, passed, message in checks:
        icon = Text(ICON_OK, style="green") if passed else Text(ICON_ERROR, style="red")
        lines.append(Text.assemble(icon, f" {check_name}: ", Text(message, style="dim" if passed else "yellow")))

    content = Text("\n").join(lines)
    return Panel(content, title="System Check", border_style="cyan")


def print_routes(routes: list[dict]):
    console.print(routes_table(routes))


def print_doctor(checks: list[tuple[str, bool, str]]):
    console.print(doctor_panel(checks))
