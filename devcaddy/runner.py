"""
Dev server lifecycle integration.

DevServerHooks is the framework-neutral plugin: call server_started(port)
once the dev server listens and server_stopped() when it exits. CaddyRunner
wires those hooks around Flask, FastAPI/Starlette or any WSGI app.
"""

import atexit
import logging
import signal
import socket
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from .caddy import Caddy
from .config import CaddySettings, ProjectConfig, is_production
from .errors import DevCaddyError
from .output import print_error, print_info

logger = logging.getLogger("devcaddy.runner")


def find_free_port(start: int = 8000, end: int = 9000) -> int:
    """Find an available port in the given range"""
    for port in range(start, end):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("127.0.0.1", port))
                return port
        except OSError:
            continue
    raise RuntimeError(f"No free ports found in range {start}-{end}")


class DevServerHooks:
    """
    Publishes a dev server through Caddy for as long as it runs.

    Usage:
        hooks = DevServerHooks(["api", "api-dev"])
        hooks.server_started(8000)
        ...
        hooks.server_stopped()
    """

    def __init__(
        self,
        hostnames: list[str] | None = None,
        settings: CaddySettings | None = None,
        stop_if_idle: bool = False,
    ):
        self.hostnames = hostnames
        self.settings = settings
        self.stop_if_idle = stop_if_idle
        self.caddy: Caddy | None = None

    @property
    def enabled(self) -> bool:
        return not is_production()

    def server_started(self, port: int) -> bool:
        """Publish the dev server listening on port. Returns False when disabled."""
        if not self.enabled:
            logger.debug("Production environment, not touching Caddy")
            return False

        # A restarted dev server may come back on another port; Caddy stays up
        self._remove_routes(stop_if_idle=False)

        hostnames = self.hostnames or ProjectConfig().hostnames
        caddy = Caddy(port, settings=self.settings)
        try:
            caddy.launch(hostnames)
        except DevCaddyError:
            caddy.close()
            raise
        self.caddy = caddy
        return True

    def server_stopped(self) -> bool:
        """Remove the dev server route. Safe to call more than once."""
        return self._remove_routes(self.stop_if_idle)

    def _remove_routes(self, stop_if_idle: bool) -> bool:
        caddy, self.caddy = self.caddy, None
        if caddy is None:
            return False
        try:
            caddy.down(stop_if_idle=stop_if_idle)
        finally:
            caddy.close()
        return True


@contextmanager
def caddy_routes(
    port: int,
    hostnames: list[str] | None = None,
    settings: CaddySettings | None = None,
) -> Iterator[DevServerHooks]:
    """
    Keep Caddy routes for port alive while the block runs.

    Example:
        with caddy_routes(5173, ["web"]):
            server.serve_forever()
    """
    hooks = DevServerHooks(hostnames, settings=settings)
    hooks.server_started(port)
    try:
        yield hooks
    finally:
        hooks.server_stopped()


class CaddyRunner:
    """
    Runs a web app and publishes it through Caddy.

    Usage:
        from devcaddy.runner import run

        run(app)                             # hostnames from devcaddy.yml
        run(app, hostnames=["api"], port=8000)
    """

    def __init__(
        self,
        app: Any,
        port: int | None = None,
        hostnames: list[str] | None = None,
        host: str = "127.0.0.1",
        settings: CaddySettings | None = None,
        **kwargs,
    ):
        self.app = app
        self.host = host
        self.port = port or find_free_port()
        self.kwargs = kwargs
        self.hooks = DevServerHooks(hostnames, settings=settings)
        self.framework = self._detect_framework()

    def _detect_framework(self) -> str:
        """Detect which framework the app is using"""
        app_type = type(self.app).__name__
        app_module = type(self.app).__module__.lower()

        if "flask" in app_module or app_type == "Flask":
            return "flask"
        elif "fastapi" in app_module or app_type == "FastAPI":
            return "fastapi"
        elif "starlette" in app_module or app_type == "Starlette":
            return "starlette"
        elif callable(self.app):
            return "wsgi"
        return "unknown"

    def _cleanup(self):
        try:
            self.hooks.server_stopped()
        except DevCaddyError as e:
            print_error(f"Failed to remove Caddy routes: {e}")

    def _run_flask(self):
        self.app.run(
            host=self.host,
            port=self.port,
            debug=self.kwargs.get("debug", False),
            use_reloader=False,
            **{k: v for k, v in self.kwargs.items() if k not in ("debug", "use_reloader")},
        )

    def _run_asgi(self):
        try:
            import uvicorn
        except ImportError:
            print_error("uvicorn not installed. Run: pip install devcaddy[servers]")
            sys.exit(1)

        uvicorn.run(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self.kwargs.get("log_level", "info"),
        )

    def _run_wsgi(self):
        """Run a generic WSGI app with waitress or werkzeug"""
        try:
            from waitress import serve

            serve(self.app, host=self.host, port=self.port)
        except ImportError:
            try:
                from werkzeug.serving import run_simple

                run_simple(self.host, self.port, self.app, use_reloader=False)
            except ImportError:
                print_error("No WSGI server available. Run: pip install devcaddy[servers]")
                sys.exit(1)

    def serve(self):
        """Run the framework server in the foreground"""
        if self.framework == "flask":
            self._run_flask()
        elif self.framework in ("fastapi", "starlette"):
            self._run_asgi()
        elif self.framework == "wsgi":
            self._run_wsgi()
        else:
            raise TypeError(f"Don't know how to serve {type(self.app).__name__}")

    def run(self):
        """Publish routes, serve the app, and remove routes on any exit"""

        def cleanup_handler(signum, frame):
            self._cleanup()
            sys.exit(0)

        signal.signal(signal.SIGINT, cleanup_handler)
        signal.signal(signal.SIGTERM, cleanup_handler)
        atexit.register(self._cleanup)

        try:
            self.hooks.server_started(self.port)
        except DevCaddyError as e:
            print_error(str(e))
            sys.exit(1)

        print_info(f"Serving {self.framework} app on {self.host}:{self.port}")
        try:
            self.serve()
        finally:
            self._cleanup()


def run(
    app: Any,
    port: int | None = None,
    hostnames: list[str] | None = None,
    host: str = "127.0.0.1",
    **kwargs,
):
    """
    Run a web application published at https://<hostname>.<domain>.

    Args:
        app: Flask, FastAPI, Starlette or WSGI application
        port: Port to run on. A free port in 8000-9000 if not specified
        hostnames: Hostname labels. Read from devcaddy.yml if not specified
        host: Host to bind to (default: 127.0.0.1)
        **kwargs: Additional arguments passed to the framework's run method
    """
    CaddyRunner(app=app, port=port, hostnames=hostnames, host=host, **kwargs).run()
