"""Main entry point for devcaddy CLI"""

import argparse
import json
import os
import sys
from pathlib import Path

from . import __version__
from .admin import AdminClient
from .caddy import Caddy, attach, detach
from .caddy_lifecycle import running_pid
from .config import CaddySettings, ProjectConfig, default_project_name, get_settings_file, write_project_config
from .diagnostics import all_passed, run_checks
from .errors import DevCaddyError, SettingsError
from .output import console, print_doctor, print_error, print_info, print_routes, print_success, print_warning
from .providers import CloudflareProvider, OvhProvider
from .structured_logging import setup_logging
from .validation import DEFAULT_ADMIN_PORT, DEFAULT_CLOUDFLARE_TOKEN, validate_project

DEFAULT_ATTACH_ADMIN_URL = "http://localhost:2019"


def _hostnames(args) -> list[str]:
    return args.hostnames or ProjectConfig().hostnames


def handle_up(args) -> bool:
    caddy = Caddy(args.port)
    try:
        caddy.launch(_hostnames(args))
    finally:
        caddy.close()
    return True


def handle_down(args) -> bool:
    caddy = Caddy(args.port)
    try:
        caddy.down(stop_if_idle=args.stop_idle)
    finally:
        caddy.close()
    return True


def handle_spawn(args) -> bool:
    caddy = Caddy(0)
    try:
        return caddy.spawn()
    finally:
        caddy.close()


def handle_status(args) -> bool:
    settings = CaddySettings.load()
    with AdminClient(settings.api_url) as client:
        running = client.is_up()
        routes = Caddy(0, settings=settings, client=client).routes() if running else []

    if args.json:
        print(
            json.dumps(
                {
                    "running": running,
                    "admin": settings.admin_address,
                    "domain": settings.domain,
                    "pid": running_pid(),
                    "routes": routes,
                },
                indent=2,
            )
        )
        return running

    if not running:
        print_info(f"Caddy is not running (admin {settings.admin_address})")
        return False

    pid = running_pid()
    print_success(f"Caddy is running (admin {settings.admin_address}" + (f", pid {pid})" if pid else ")"))
    if routes:
        print_routes(routes)
    else:
        print_info(f"No dev server routes for [yellow]{settings.wildcard}[/yellow]")
    return True


def _attach_client(args) -> AdminClient:
    return AdminClient(args.admin_url or os.getenv("CADDY_ADMIN_URL") or DEFAULT_ATTACH_ADMIN_URL)


def _attach_hostname(args) -> str | None:
    hostname = args.hostname or os.getenv("CADDY_HOSTNAME")
    if not hostname:
        print_error("Hostname required (argument or CADDY_HOSTNAME)")
    return hostname


def handle_attach(args) -> bool:
    hostname = _attach_hostname(args)
    if not hostname:
        return False
    with _attach_client(args) as client:
        return attach(client, hostname, args.port) is not None


def handle_detach(args) -> bool:
    hostname = _attach_hostname(args)
    if not hostname:
        return False
    with _attach_client(args) as client:
        if detach(client, hostname):
            print_success(f"Removed Caddy config for https://{hostname}")
        else:
            print_info(f"No Caddy config for https://{hostname}")
    return True


def handle_doctor(args) -> bool:
    checks = run_checks()
    print_doctor(checks)
    return all_passed(checks)


def handle_init(args) -> bool:
    """Create devcaddy.yml in the current directory"""
    cwd = Path.cwd()
    config_file = cwd / "devcaddy.yml"

    if config_file.exists() and not args.yes:
        response = input("devcaddy.yml already exists. Overwrite? [y/N]: ").strip().lower()
        if response not in ("y", "yes"):
            print_info("Cancelled.")
            return False

    hostnames = args.hostnames
    if not hostnames:
        default = default_project_name(cwd)
        if args.yes:
            hostnames = [default]
        else:
            answer = input(f"Hostnames, comma separated [{default}]: ").strip()
            hostnames = [h.strip() for h in answer.split(",") if h.strip()] or [default]

    is_valid, errors = validate_project({"hostnames": hostnames})
    if not is_valid:
        raise SettingsError("Invalid hostnames", errors)

    saved = write_project_config(config_file, hostnames)
    print_success(f"Created {saved}")
    return True


def handle_setup(args) -> bool:
    """Write the global caddy.json"""
    path = get_settings_file()
    if path.exists() and not args.force:
        print_warning(f"{path} already exists. Use --force to overwrite.")
        return False

    if args.provider == "ovh":
        provider = OvhProvider(
            endpoint=args.endpoint or "",
            application_key=args.application_key or "",
            application_secret=args.application_secret or "",
            consumer_key=args.consumer_key or "",
        )
    else:
        provider = CloudflareProvider(api_token=args.api_token or DEFAULT_CLOUDFLARE_TOKEN)

    # Round-trip through validation so CLI input obeys the same schema as the file
    settings = CaddySettings.from_dict(
        {"provider": provider.to_caddy(), "port": args.port, "domain": args.domain},
        path=path,
    )
    saved = settings.save()
    print_success(f"Wrote {saved}")
    print_info(f"Dev servers will be served at https://<hostname>.{settings.domain}")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devcaddy",
        description="devcaddy - publish local dev servers through Caddy with TLS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"devcaddy {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    up_parser = subparsers.add_parser("up", help="Publish a dev server (starts Caddy if needed)")
    up_parser.add_argument("--port", "-p", type=int, required=True, help="Dev server port")
    up_parser.add_argument(
        "--hostname",
        "-H",
        action="append",
        dest="hostnames",
        help="Hostname label, repeatable (default: from devcaddy.yml)",
    )

    down_parser = subparsers.add_parser("down", help="Remove a dev server's routes")
    down_parser.add_argument("--port", "-p", type=int, required=True, help="Dev server port")
    down_parser.add_argument("--stop-idle", action="store_true", help="Stop Caddy when no routes remain")

    status_parser = subparsers.add_parser("status", help="Show Caddy and route status")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("spawn", help="Start Caddy if it is not running")

    attach_parser = subparsers.add_parser("attach", help="Add a route to an existing :443 server")
    attach_parser.add_argument("hostname", nargs="?", help="Full hostname (default: CADDY_HOSTNAME)")
    attach_parser.add_argument("--port", "-p", type=int, required=True, help="Dev server port")
    attach_parser.add_argument("--admin-url", help="Admin API URL (default: CADDY_ADMIN_URL or localhost:2019)")

    detach_parser = subparsers.add_parser("detach", help="Remove an attached route")
    detach_parser.add_argument("hostname", nargs="?", help="Full hostname (default: CADDY_HOSTNAME)")
    detach_parser.add_argument("--admin-url", help="Admin API URL (default: CADDY_ADMIN_URL or localhost:2019)")

    subparsers.add_parser("doctor", help="Check Caddy, settings and project configuration")

    init_parser = subparsers.add_parser("init", help="Create devcaddy.yml project config")
    init_parser.add_argument("--hostname", "-H", action="append", dest="hostnames", help="Hostname label, repeatable")
    init_parser.add_argument("--yes", "-y", action="store_true", help="Accept defaults without prompting")

    setup_parser = subparsers.add_parser("setup", help="Write the global caddy.json")
    setup_parser.add_argument("--domain", "-d", required=True, help="Base domain, e.g. dev.example.com")
    setup_parser.add_argument("--provider", choices=["cloudflare", "ovh"], default="cloudflare", help="DNS provider")
    setup_parser.add_argument("--port", type=int, default=DEFAULT_ADMIN_PORT, help="Caddy admin port (default: 2019)")
    setup_parser.add_argument("--api-token", help="Cloudflare API token (default: {env.CLOUDFLARE_API_KEY})")
    setup_parser.add_argument("--endpoint", help="OVH endpoint URL")
    setup_parser.add_argument("--application-key", help="OVH application key")
    setup_parser.add_argument("--application-secret", help="OVH application secret")
    setup_parser.add_argument("--consumer-key", help="OVH consumer key")
    setup_parser.add_argument("--force", "-f", action="store_true", help="Overwrite an existing caddy.json")

    return parser


HANDLERS = {
    "up": handle_up,
    "down": handle_down,
    "status": handle_status,
    "spawn": handle_spawn,
    "attach": handle_attach,
    "detach": handle_detach,
    "doctor": handle_doctor,
    "init": handle_init,
    "setup": handle_setup,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point"""
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        success = handler(args)
    except DevCaddyError as e:
        print_error(str(e))
        return 1
    except KeyboardInterrupt:
        console.print()
        return 130

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
