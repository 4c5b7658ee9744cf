"""Configuration management for caddy.json (global) and devcaddy.yml (per project)"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import SettingsError
from .providers import Provider, parse_provider
from .validation import DEFAULT_ADMIN_PORT, validate_project, validate_settings

logger = logging.getLogger("devcaddy.config")

PROJECT_FILENAMES = ("devcaddy.yml", "devcaddy.yaml")


def get_devcaddy_dir() -> Path:
    """Get the ~/.devcaddy directory path"""
    return Path.home() / ".devcaddy"


def get_settings_file() -> Path:
    """Get the caddy.json path, honouring DEVCADDY_CONFIG"""
    env_path = os.getenv("DEVCADDY_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return get_devcaddy_dir() / "caddy.json"


def is_production() -> bool:
    """Hooks are disabled entirely when DEVCADDY_ENV=production"""
    return os.getenv("DEVCADDY_ENV", "").strip().lower() == "production"


def default_project_name(path: Path) -> str:
    return path.name.lower().replace(" ", "-")


@dataclass(frozen=True)
class CaddySettings:
    """
    Global settings shared by every project, stored in ~/.devcaddy/caddy.json.

    Schema:
        provider: object  # DNS provider for the wildcard certificate
        port: int         # Caddy admin API port (default: 2019)
        domain: str       # Base domain, dev servers live at <hostname>.<domain>
    """

    provider: Provider
    domain: str
    port: int = DEFAULT_ADMIN_PORT
    path: Path | None = field(default=None, compare=False)

    @property
    def admin_address(self) -> str:
        return f"localhost:{self.port}"

    @property
    def api_url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def wildcard(self) -> str:
        return f"*.{self.domain}"

    def url_for(self, hostname: str) -> str:
        """Public URL of a dev server hostname"""
        return f"https://{hostname}.{self.domain}"

    @classmethod
    def from_dict(cls, data: Any, path: Path | None = None) -> "CaddySettings":
        is_valid, errors = validate_settings(data)
        if not is_valid:
            raise SettingsError(f"Invalid Caddy configuration in {path or 'settings'}", errors)
        return cls(
            provider=parse_provider(data["provider"]),
            domain=data["domain"],
            port=data.get("port", DEFAULT_ADMIN_PORT),
            path=path,
        )

    @classmethod
    def load(cls, path: Path | None = None) -> "CaddySettings":
        """Load and validate settings, raising SettingsError on any problem"""
        path = path or get_settings_file()
        if not path.exists():
            raise SettingsError(f"No Caddy configuration found at {path}. Run 'devcaddy setup' first.")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SettingsError(f"Failed to parse {path}: {e}") from e
        except OSError as e:
            raise SettingsError(f"Failed to read {path}: {e}") from e

        logger.debug("Loaded settings from %s", path)
        return cls.from_dict(data, path=path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider.to_caddy(),
            "port": self.port,
            "domain": self.domain,
        }

    def save(self, path: Path | None = None) -> Path:
        """Write settings atomically with owner-only permissions"""
        save_path = path or self.path or get_settings_file()
        save_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = save_path.with_suffix(".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.write("\n")
            # The provider block may carry API secrets
            if sys.platform != "win32":
                tmp.chmod(0o600)
            tmp.replace(save_path)
        except OSError as e:
            raise SettingsError(f"Failed to save settings: {e}") from e
        return save_path


class ProjectConfig:
    """
    Manages per-project devcaddy.yml configuration.

    Schema:
        hostnames: list[str]  # Labels served as <hostname>.<domain>
    """

    def __init__(self, start_path: Path | None = None):
        self.start_path = Path(start_path or os.getcwd()).resolve()
        self.config_file: Path | None = None
        self.config: dict = {}
        self._find_and_load()

    def _find_and_load(self):
        """Search for devcaddy.yml in current and parent directories"""
        current = self.start_path

        for _ in range(10):
            for filename in PROJECT_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    self.config_file = config_path
                    self._load_yaml()
                    return

            parent = current.parent
            if parent == current:
                break
            current = parent

        self.config = {"hostnames": [default_project_name(self.start_path)]}

    def _load_yaml(self):
        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(f"Failed to load {self.config_file}: {e}") from e

        is_valid, errors = validate_project(data)
        if not is_valid:
            raise SettingsError(f"Invalid project configuration in {self.config_file}", errors)
        self.config = data

    @property
    def hostnames(self) -> list[str]:
        return list(self.config.get("hostnames") or [])

    def exists(self) -> bool:
        """Check if a project config file was found"""
        return self.config_file is not None


def write_project_config(path: Path, hostnames: list[str]) -> Path:
    """Write a devcaddy.yml listing hostnames"""
    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump({"hostnames": list(hostnames)}, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise SettingsError(f"Failed to save config: {e}") from e
    return path
