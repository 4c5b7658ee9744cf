"""
Desired-state templates for the Caddy JSON configuration tree.

Every object devcaddy manages carries an "@id" so the admin API can address
it directly at /id/<id>. A CaddyEntry describes how to create an object
(method + target) and, optionally, which sub-object to compare and patch
when the object already exists.
"""

from dataclasses import dataclass, field
from typing import Any

from .providers import Provider

SERVER_NAME = "devcaddy"
SERVER_ID = "devcaddy-server"
WILDCARD_MATCH_ID = "devcaddy-wildcard-match"
WILDCARD_ROUTES_ID = "devcaddy-wildcard-routes"
WILDCARD_TLS_ID = "devcaddy-wildcard-tls"

HTTPS_LISTEN = ":443"
UPSTREAM_HOST_HEADER = "{http.reverse_proxy.upstream.hostport}"
DOWN_BODY = 'Dev server "{http.request.host}" appears to be down.'


@dataclass(frozen=True)
class EntryUpdate:
    id: str
    json: Any


@dataclass(frozen=True)
class CaddyEntry:
    target: str
    method: str
    id: str
    json: Any = field(default_factory=dict)
    update: EntryUpdate | None = None

    @property
    def lookup_id(self) -> str:
        """Id fetched to decide between create, update and skip"""
        return self.update.id if self.update else self.id

    @property
    def desired(self) -> Any:
        """Object the live configuration at lookup_id must equal"""
        return self.update.json if self.update else self.json


def hostname_id(dev_port: int) -> str:
    return f"devcaddy-hostname-{dev_port}"


def route_id(hostname: str) -> str:
    return f"devcaddy-route-{hostname}"


def reverse_proxy_handler(dev_port: int) -> dict[str, Any]:
    return {
        "handler": "reverse_proxy",
        "headers": {
            "request": {
                "set": {
                    "Host": [UPSTREAM_HOST_HEADER],
                },
            },
        },
        "upstreams": [
            {"dial": f"localhost:{dev_port}"},
        ],
    }


class Configurator:
    """Builds the CaddyEntry objects for a base domain and dev server port"""

    def wildcard_match(self, domain: str) -> dict[str, Any]:
        return {
            "@id": WILDCARD_MATCH_ID,
            "host": [f"*.{domain}"],
        }

    def server(self, domain: str) -> CaddyEntry:
        """HTTPS server catching *.domain, with an empty subroute for dev servers"""
        return CaddyEntry(
            id=SERVER_ID,
            target=f"/config/apps/http/servers/{SERVER_NAME}",
            method="PUT",
            json={
                "@id": SERVER_ID,
                "listen": [HTTPS_LISTEN],
                "routes": [
                    {
                        "match": [self.wildcard_match(domain)],
                        "handle": [
                            {
                                "@id": WILDCARD_ROUTES_ID,
                                "handler": "subroute",
                                "routes": [],
                            },
                            {
                                "body": DOWN_BODY,
                                "handler": "static_response",
                                "status_code": 404,
                            },
                        ],
                        "terminal": True,
                    },
                ],
            },
            # Only the domain may change once the server exists; the
            # subroute holds live dev server routes and must not be reset.
            update=EntryUpdate(id=WILDCARD_MATCH_ID, json=self.wildcard_match(domain)),
        )

    def tls_policy(self, domain: str, provider: Provider) -> dict[str, Any]:
        return {
            "@id": WILDCARD_TLS_ID,
            "subjects": [f"*.{domain}"],
            "issuers": [
                {
                    "module": "acme",
                    "challenges": {
                        "dns": {
                            "provider": provider.to_caddy(),
                        },
                    },
                },
            ],
        }

    def tls(self, domain: str, provider: Provider) -> CaddyEntry:
        """ACME DNS-01 automation policy issuing the *.domain certificate"""
        return CaddyEntry(
            id=WILDCARD_TLS_ID,
            target="/config/apps/tls/automation/policies",
            method="PUT",
            json=[self.tls_policy(domain, provider)],
            update=EntryUpdate(id=WILDCARD_TLS_ID, json=self.tls_policy(domain, provider)),
        )

    def hostnames(self, subdomains: list[str], domain: str, dev_port: int) -> CaddyEntry:
        """Route sending every <subdomain>.<domain> to the dev server port"""
        entry_id = hostname_id(dev_port)
        return CaddyEntry(
            id=entry_id,
            target=f"/id/{WILDCARD_ROUTES_ID}/routes/0",
            method="PUT",
            json={
                "@id": entry_id,
                "handle": [reverse_proxy_handler(dev_port)],
                "match": [{"host": [f"{subdomain}.{domain}"]} for subdomain in subdomains],
            },
        )

    def down(self, dev_port: int) -> CaddyEntry:
        entry_id = hostname_id(dev_port)
        return CaddyEntry(
            id=entry_id,
            target=f"/id/{entry_id}",
            method="DELETE",
            json={},
        )

    def route(self, hostname: str, dev_port: int) -> dict[str, Any]:
        """Standalone route for attaching to a server devcaddy does not own"""
        return {
            "@id": route_id(hostname),
            "handle": [
                {
                    "handler": "subroute",
                    "routes": [
                        {"handle": [reverse_proxy_handler(dev_port)]},
                    ],
                },
            ],
            "match": [
                {"host": [hostname]},
            ],
        }
