"""
Caddy orchestration for a single dev server.

launch() makes sure Caddy is running, then reconciles, in order, the
wildcard HTTPS server, its TLS automation policy and the route for this
dev server's hostnames. down() removes that route again.
"""

import logging
from typing import Any

from .admin import AdminClient, ReconcileResult
from .caddy_lifecycle import CaddyProcess, spawn_caddy
from .config import CaddySettings
from .configurator import WILDCARD_ROUTES_ID, CaddyEntry, Configurator, route_id
from .errors import CaddyAdminError, DevCaddyError, SettingsError
from .output import print_action, print_error, print_failure, print_info, print_start, print_success, print_warning
from .validation import validate_project

logger = logging.getLogger("devcaddy.caddy")


class Caddy:
    """Reconciles Caddy's live configuration with one running dev server"""

    def __init__(
        self,
        dev_port: int,
        settings: CaddySettings | None = None,
        client: AdminClient | None = None,
        configurator: Configurator | None = None,
    ):
        self.dev_port = dev_port
        self.settings = settings or CaddySettings.load()
        self.client = client or AdminClient(self.settings.api_url)
        self.configurator = configurator or Configurator()
        self.process: CaddyProcess | None = None

    def close(self) -> None:
        self.client.close()

    def is_up(self) -> bool:
        return self.client.is_up()

    def spawn(self) -> bool:
        """Start Caddy unless its admin API already answers"""
        port = self.settings.port
        if self.is_up():
            print_info(f"Caddy server is already running on port [yellow]{port}[/yellow]")
            return True

        print_start(f"Caddy is not running, launching with admin port set to [yellow]{port}[/yellow]...")
        self.process = spawn_caddy(self.settings)
        print_success("Caddy server launched")
        return True

    def _apply(self, message: str, entry: CaddyEntry) -> ReconcileResult:
        verb = "Deleting" if entry.method == "DELETE" else None
        print_action(message, verb=verb)
        try:
            result = self.client.reconcile(entry)
        except DevCaddyError as e:
            lines = [f"{entry.method} {entry.target}", str(e)]
            if e.__cause__ is not None:
                lines.append(str(e.__cause__))
            print_failure("Configuring Caddy failed", lines)
            raise
        print_action(message, result.action)
        return result

    def launch(self, hostnames: list[str]) -> list[ReconcileResult]:
        """Spawn Caddy if needed and publish this dev server under hostnames"""
        is_valid, errors = validate_project({"hostnames": list(hostnames)})
        if not is_valid:
            raise SettingsError("Invalid hostnames", errors)

        domain = self.settings.domain
        wildcard = self.settings.wildcard
        provider = self.settings.provider

        try:
            self.spawn()
        except DevCaddyError as e:
            print_error(f"Unable to launch Caddy server: {e}")
            raise

        results = [
            self._apply(
                f"[cyan]server[/cyan] for [green]wildcard domain[/green] [yellow]{wildcard}[/yellow]",
                self.configurator.server(domain),
            ),
            self._apply(
                f"[cyan]TLS settings[/cyan] for [green]wildcard domain[/green] [yellow]{wildcard}[/yellow] "
                f"and [green]provider[/green] [yellow]{provider.name}[/yellow]",
                self.configurator.tls(domain, provider),
            ),
        ]

        message = f"[cyan]reverse proxies[/cyan] for [green]wildcard domain[/green] [yellow]{wildcard}[/yellow]"
        result = self._apply(message, self.configurator.hostnames(hostnames, domain, self.dev_port))
        results.append(result)

        for hostname in hostnames:
            url = self.settings.url_for(hostname)
            print_action(
                f"[cyan]reverse proxy[/cyan] for [yellow][link={url}]{url}[/link][/yellow] "
                f"to [green]port[/green] [yellow]{self.dev_port}[/yellow]",
                result.action,
            )

        print_success("Caddy configuration complete")
        return results

    def routes(self) -> list[dict[str, Any]]:
        """Routes currently published inside the wildcard subroute"""
        try:
            return self.client.get_json(f"/id/{WILDCARD_ROUTES_ID}/routes") or []
        except CaddyAdminError as e:
            # Caddy answers unknown ids with 404 (older releases with 400)
            if e.status_code in (400, 404):
                return []
            raise

    def is_idle(self) -> bool:
        """True when no dev server route is left"""
        return not self.routes()

    def down(self, stop_if_idle: bool = False) -> ReconcileResult:
        """Remove this dev server's route, optionally stopping an idle Caddy"""
        message = f"[cyan]reverse proxies[/cyan] to [green]port[/green] [yellow]{self.dev_port}[/yellow]"
        result = self._apply(message, self.configurator.down(self.dev_port))

        if stop_if_idle and self.is_idle():
            print_start("No dev server routes left, stopping Caddy...")
            self.client.stop()
            print_success("Caddy stopped")
        return result


def attach(client: AdminClient, hostname: str, dev_port: int, configurator: Configurator | None = None) -> str | None:
    """
    Publish hostname on an existing :443 server not managed by devcaddy.

    Returns the name of the server the route was added to, or None when
    Caddy has no server listening on :443.
    """
    configurator = configurator or Configurator()
    detach(client, hostname)

    try:
        servers = client.get_json("/config/apps/http/servers") or {}
    except CaddyAdminError as e:
        # No http app at all: "invalid traversal path" (400) or 404
        if e.status_code not in (400, 404):
            raise
        servers = {}

    for server_name, server in servers.items():
        if ":443" not in server.get("listen", []):
            continue

        target = f"/config/apps/http/servers/{server_name}/routes/0"
        response = client.request("PUT", target, configurator.route(hostname, dev_port))
        if not response.is_success:
            raise CaddyAdminError("PUT", target, response.status_code, response.reason_phrase, response.text)
        print_success(f"Caddy config for [yellow]https://{hostname}[/yellow] was created.")
        return server_name

    print_error("No Caddy server found for port 443, unable to add route to your application.")
    return None


def detach(client: AdminClient, hostname: str) -> bool:
    """Remove an attached route. Returns False when there was none."""
    try:
        return client.delete_id(route_id(hostname))
    except DevCaddyError:
        print_warning("Is your Caddy server running?")
        raise
