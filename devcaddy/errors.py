"""Exceptions raised by devcaddy"""


class DevCaddyError(Exception):
    """Base class for all devcaddy errors"""


class SettingsError(DevCaddyError):
    """Configuration file missing or invalid"""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        if self.errors:
            message = message + "\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)


class CaddyUnavailableError(DevCaddyError):
    """The Caddy admin API could not be reached"""


class CaddyNotFoundError(DevCaddyError):
    """No Caddy executable on this system"""


class CaddySpawnError(DevCaddyError):
    """Caddy exited or never reported it was serving"""


class CaddyAdminError(DevCaddyError):
    """The admin API answered a mutation with a non-2xx status"""

    def __init__(self, method: str, target: str, status_code: int, reason: str = "", body: str = ""):
        self.method = method
        self.target = target
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"Unable to {method} {target}: {status_code} {reason}".rstrip()
        if body:
            message += f"\n: {body.strip()}"
        super().__init__(message)
