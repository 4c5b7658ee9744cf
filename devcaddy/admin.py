"""
Client for the Caddy admin API.

Reconciliation is read, compare, write: fetch the managed object by id,
create it when absent, patch it when it differs, and leave it alone when
it already matches. Deleting an object that does not exist counts as done.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from .configurator import CaddyEntry
from .errors import CaddyAdminError, CaddyUnavailableError
from .structured_logging import EntryLogger
from .timeouts import get_timeout

logger = logging.getLogger("devcaddy.admin")

Action = Literal["created", "updated", "deleted", "skipped"]


def _json_kind(value: Any) -> type:
    # JSON has one number type, but a bool is never a number
    if isinstance(value, bool):
        return bool
    if isinstance(value, (int, float)):
        return float
    return type(value)


def json_equal(a: Any, b: Any) -> bool:
    """Deep equality of decoded JSON values: key order ignored, True != 1"""
    if _json_kind(a) is not _json_kind(b):
        return False
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(json_equal(a[key], b[key]) for key in a)
    if isinstance(a, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    return a == b


@dataclass
class ReconcileResult:
    action: Action
    response: httpx.Response
    entry: CaddyEntry


class AdminClient:
    """Thin wrapper around httpx.Client bound to a Caddy admin address"""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else get_timeout("admin_request"),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AdminClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def request(self, method: str, path: str, payload: Any = None, timeout: float | None = None) -> httpx.Response:
        """Send a request, wrapping transport failures in CaddyUnavailableError"""
        kwargs: dict[str, Any] = {}
        if payload is not None:
            kwargs["content"] = json.dumps(payload)
            kwargs["headers"] = {"Content-Type": "application/json"}
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.debug("%s %s", method, path)
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise CaddyUnavailableError(f"Caddy admin API at {self.base_url} is unreachable: {e}") from e

    def exists(self, path: str) -> bool:
        """True when GET path succeeds; unreachable counts as missing"""
        try:
            response = self.request("GET", path, timeout=get_timeout("admin_ping"))
        except CaddyUnavailableError:
            return False
        return response.is_success

    def is_up(self) -> bool:
        return self.exists("/config/")

    def get_json(self, path: str) -> Any:
        response = self.request("GET", path)
        if not response.is_success:
            raise CaddyAdminError("GET", path, response.status_code, response.reason_phrase, response.text)
        return response.json()

    def delete_id(self, object_id: str, missing_ok: bool = True) -> bool:
        """Delete an object by @id. Returns False when it was already gone."""
        target = f"/id/{object_id}"
        response = self.request("DELETE", target)
        if response.status_code == 404 and missing_ok:
            return False
        if not response.is_success:
            raise CaddyAdminError("DELETE", target, response.status_code, response.reason_phrase, response.text)
        return True

    def stop(self) -> None:
        """Ask Caddy to shut down gracefully"""
        response = self.request("POST", "/stop")
        if not response.is_success:
            raise CaddyAdminError("POST", "/stop", response.status_code, response.reason_phrase, response.text)

    def _matches(self, response: httpx.Response, desired: Any) -> bool:
        try:
            current = response.json()
        except ValueError:
            return False
        return json_equal(current, desired)

    def reconcile(self, entry: CaddyEntry) -> ReconcileResult:
        """Apply the minimal create, update or delete that makes Caddy match entry"""
        log = EntryLogger(logger, entry.lookup_id)
        replace = False

        if entry.method != "DELETE":
            current = self.request("GET", f"/id/{entry.lookup_id}")
            if current.is_success:
                if self._matches(current, entry.desired):
                    log.debug("Already up to date")
                    return ReconcileResult("skipped", current, entry)
                replace = True
            else:
                log.debug("Not found (%s), creating", current.status_code)

        if replace:
            method, target, payload = "PATCH", f"/id/{entry.lookup_id}", entry.desired
        else:
            method, target, payload = entry.method, entry.target, entry.json

        response = self.request(method, target, None if method == "DELETE" else payload)

        if not response.is_success:
            if response.status_code == 404 and entry.method == "DELETE":
                log.debug("Already absent")
                return ReconcileResult("deleted", response, entry)
            log.error("%s %s failed with %s", method, target, response.status_code)
            raise CaddyAdminError(method, target, response.status_code, response.reason_phrase, response.text)

        if method == "DELETE":
            action: Action = "deleted"
        elif replace:
            action = "updated"
        else:
            action = "created"
        log.info("%s via %s %s", action, method, target)
        return ReconcileResult(action, response, entry)
