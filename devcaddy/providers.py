"""DNS providers used for the ACME DNS-01 challenge of the wildcard certificate"""

from dataclasses import asdict, dataclass
from typing import Any

from .errors import SettingsError
from .validation import DEFAULT_CLOUDFLARE_TOKEN, validate_provider


@dataclass(frozen=True)
class CloudflareProvider:
    api_token: str = DEFAULT_CLOUDFLARE_TOKEN
    name: str = "cloudflare"

    def to_caddy(self) -> dict[str, Any]:
        return {"name": self.name, "api_token": self.api_token}


@dataclass(frozen=True)
class OvhProvider:
    endpoint: str
    application_key: str
    application_secret: str
    consumer_key: str
    name: str = "ovh"

    def to_caddy(self) -> dict[str, Any]:
        data = asdict(self)
        name = data.pop("name")
        return {"name": name, **data}


Provider = CloudflareProvider | OvhProvider


def parse_provider(data: Any) -> Provider:
    """Build a provider from its settings block, raising SettingsError if invalid"""
    errors = validate_provider(data)
    if errors:
        raise SettingsError("Invalid DNS provider", errors)

    fields = {k: v for k, v in data.items() if k != "name"}
    if data["name"] == "cloudflare":
        return CloudflareProvider(**fields)
    return OvhProvider(**fields)
