"""Environment checks for devcaddy doctor"""

import logging
from pathlib import Path

from .admin import AdminClient
from .caddy_lifecycle import find_caddy_executable, get_caddy_version
from .config import CaddySettings, ProjectConfig
from .errors import SettingsError

logger = logging.getLogger("devcaddy.diagnostics")

# DNS provider modules and the /id/ API behave as used here from 2.7 on
MIN_CADDY_VERSION = (2, 7, 0)

Check = tuple[str, bool, str]


def format_version(version: tuple[int, int, int]) -> str:
    return ".".join(str(part) for part in version)


def check_caddy() -> list[Check]:
    caddy_exe = find_caddy_executable()
    if not caddy_exe:
        return [("Caddy", False, "not found. Install Caddy or set DEVCADDY_CADDY_BIN")]

    checks = [("Caddy", True, caddy_exe)]
    version = get_caddy_version(caddy_exe)
    required = format_version(MIN_CADDY_VERSION)
    if version is None:
        checks.append(("Caddy version", False, "could not determine version"))
    elif version < MIN_CADDY_VERSION:
        checks.append(("Caddy version", False, f"{format_version(version)} found, {required} or newer required"))
    else:
        checks.append(("Caddy version", True, f"{format_version(version)} satisfies >= {required}"))
    return checks


def check_settings(path: Path | None = None) -> tuple[Check, CaddySettings | None]:
    try:
        settings = CaddySettings.load(path)
    except SettingsError as e:
        return (("Settings", False, str(e)), None)
    return (("Settings", True, f"{settings.path} (domain {settings.domain})"), settings)


def check_project(start_path: Path | None = None) -> Check:
    try:
        project = ProjectConfig(start_path)
    except SettingsError as e:
        return ("Project", False, str(e))
    source = str(project.config_file) if project.exists() else "no devcaddy.yml, using directory name"
    return ("Project", True, f"{', '.join(project.hostnames)} ({source})")


def check_admin(settings: CaddySettings) -> Check:
    with AdminClient(settings.api_url) as client:
        if client.is_up():
            return ("Admin API", True, f"answering on {settings.admin_address}")
    return ("Admin API", False, f"not answering on {settings.admin_address} (devcaddy up will start Caddy)")


def run_checks(settings_path: Path | None = None, project_path: Path | None = None) -> list[Check]:
    """Run every check, in display order"""
    checks = check_caddy()
    settings_check, settings = check_settings(settings_path)
    checks.append(settings_check)
    checks.append(check_project(project_path))
    if settings is not None:
        checks.append(check_admin(settings))
    return checks


def all_passed(checks: list[Check]) -> bool:
    """The admin API being down is not a failure; Caddy is started on demand"""
    return all(passed for name, passed, _ in checks if name != "Admin API")
