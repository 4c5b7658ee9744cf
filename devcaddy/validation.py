"""Validation for caddy.json settings and devcaddy.yml project files"""

import logging
import re
from typing import Any
from urllib.parse import urlparse

logger = logging.getLogger("devcaddy.validation")

DOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$", re.IGNORECASE)
HOSTNAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$", re.IGNORECASE)

DEFAULT_ADMIN_PORT = 2019
DEFAULT_CLOUDFLARE_TOKEN = "{env.CLOUDFLARE_API_KEY}"

SETTINGS_KEYS = {"provider", "port", "domain"}
PROJECT_KEYS = {"hostnames"}

PROVIDER_FIELDS: dict[str, dict[str, str]] = {
    "cloudflare": {
        "api_token": "Cloudflare token is required",
    },
    "ovh": {
        "endpoint": "OVH endpoint must be a valid URL",
        "application_key": "OVH application key is required",
        "application_secret": "OVH application secret is required",
        "consumer_key": "OVH consumer key is required",
    },
}

# Fields that fall back to a default when omitted
PROVIDER_DEFAULTS: dict[str, dict[str, str]] = {
    "cloudflare": {"api_token": DEFAULT_CLOUDFLARE_TOKEN},
    "ovh": {},
}


def validate_domain(domain: Any) -> bool:
    """Validate a base domain such as example.dev"""
    return isinstance(domain, str) and bool(DOMAIN_PATTERN.match(domain))


def validate_hostname(hostname: Any) -> bool:
    """Validate a single hostname label (letters, numbers and hyphens)"""
    return isinstance(hostname, str) and len(hostname) <= 63 and bool(HOSTNAME_PATTERN.match(hostname))


def validate_port(port: Any) -> bool:
    """Validate a TCP port number"""
    if isinstance(port, bool) or not isinstance(port, int):
        return False
    return 1 <= port <= 65535


def _validate_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_provider(data: Any) -> list[str]:
    """
    Validate a DNS provider block.

    Returns a list of error messages, empty when the block is valid.
    """
    if not isinstance(data, dict):
        return ["provider: must be an object"]

    name = data.get("name")
    if not isinstance(name, str) or not name:
        return ["provider.name: Provider name is required"]
    if name not in PROVIDER_FIELDS:
        known = ", ".join(sorted(PROVIDER_FIELDS))
        return [f"provider.name: unknown provider '{name}' (expected one of: {known})"]

    errors = []
    fields = PROVIDER_FIELDS[name]
    defaults = PROVIDER_DEFAULTS[name]

    for key in sorted(set(data) - set(fields) - {"name"}):
        errors.append(f"provider.{key}: unrecognized key for provider '{name}'")

    for key, message in fields.items():
        value = data.get(key, defaults.get(key))
        if key == "endpoint":
            if not _validate_url(value):
                errors.append(f"provider.{key}: {message}")
        elif not isinstance(value, str) or not value:
            errors.append(f"provider.{key}: {message}")

    return errors


def validate_settings(data: Any) -> tuple[bool, list[str]]:
    """
    Validate the global caddy.json settings object.

    Returns:
        (is_valid, errors)
    """
    if not isinstance(data, dict):
        return (False, ["settings: must be a JSON object"])

    errors = []
    for key in sorted(set(data) - SETTINGS_KEYS):
        errors.append(f"{key}: unrecognized key")

    if "provider" not in data:
        errors.append("provider: required")
    else:
        errors.extend(validate_provider(data["provider"]))

    port = data.get("port", DEFAULT_ADMIN_PORT)
    if isinstance(port, bool) or not isinstance(port, int):
        errors.append("port: Port must be an integer")
    elif port < 1:
        errors.append("port: Port must be greater than 0")
    elif port > 65535:
        errors.append("port: Port must be less than 65536")

    if "domain" not in data:
        errors.append("domain: required")
    elif not validate_domain(data["domain"]):
        errors.append(f"domain: Invalid domain format ({data['domain']!r})")

    if errors:
        logger.debug("Settings rejected: %s", errors)
    return (not errors, errors)


def validate_project(data: Any) -> tuple[bool, list[str]]:
    """
    Validate a devcaddy.yml project object.

    Returns:
        (is_valid, errors)
    """
    if not isinstance(data, dict):
        return (False, ["project: must be a mapping"])

    errors = []
    for key in sorted(set(data) - PROJECT_KEYS):
        errors.append(f"{key}: unrecognized key")

    hostnames = data.get("hostnames")
    if not isinstance(hostnames, list):
        errors.append("hostnames: must be a list")
    elif not hostnames:
        errors.append("hostnames: At least one hostname must be provided")
    else:
        for index, hostname in enumerate(hostnames):
            if not validate_hostname(hostname):
                errors.append(
                    f"hostnames[{index}]: {hostname!r} is invalid. "
                    "Hostnames can only contain letters, numbers and hyphens"
                )

    return (not errors, errors)
