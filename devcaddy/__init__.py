"""
devcaddy - Publish local dev servers through Caddy
Keeps a local Caddy's admin API configuration in step with running dev servers
"""

__version__ = "0.1.0"

from .admin import AdminClient, ReconcileResult
from .caddy import Caddy, attach, detach
from .config import CaddySettings, ProjectConfig
from .configurator import CaddyEntry, Configurator
from .runner import CaddyRunner, DevServerHooks, caddy_routes, run

__all__ = [
    "AdminClient",
    "ReconcileResult",
    "Caddy",
    "attach",
    "detach",
    "CaddySettings",
    "ProjectConfig",
    "CaddyEntry",
    "Configurator",
    "CaddyRunner",
    "DevServerHooks",
    "caddy_routes",
    "run",
    "__version__",
]
