"""Tests for rich console output"""

import unittest
from unittest.mock import patch

from rich.console import Console

from devcaddy import output


def _render(renderable) -> str:
    console = Console(width=120, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestOutput(unittest.TestCase):
    def test_routes_table(self):
        routes = [
            {
                "@id": "devcaddy-hostname-8000",
                "match": [{"host": ["api.example.dev"]}, {"host": ["web.example.dev"]}],
                "handle": [{"handler": "reverse_proxy", "upstreams": [{"dial": "localhost:8000"}]}],
            },
            {"handle": []},
        ]
        text = _render(output.routes_table(routes))

        self.assertIn("devcaddy-hostname-8000", text)
        self.assertIn("api.example.dev, web.example.dev", text)
        self.assertIn("localhost:8000", text)

    def test_doctor_panel(self):
        text = _render(output.doctor_panel([("Caddy", True, "/usr/bin/caddy"), ("Settings", False, "missing")]))
        self.assertIn("System Check", text)
        self.assertIn("Caddy: /usr/bin/caddy", text)
        self.assertIn("Settings: missing", text)

    def test_failure_panel(self):
        text = _render(output.failure_panel("Configuring Caddy failed", ["PUT /config/apps/tls", "", "boom"]))
        self.assertIn("Configuring Caddy failed", text)
        self.assertIn("PUT /config/apps/tls", text)
        self.assertIn("boom", text)


class TestPrintAction(unittest.TestCase):
    def setUp(self):
        self.console = Console(width=120, record=True, color_system=None)
        patcher = patch.object(output, "console", self.console)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_announce(self):
        output.print_action("server", verb="Deleting")
        self.assertIn("Deleting server...", self.console.export_text())

    def test_outcomes(self):
        output.print_action("server", "created")
        output.print_action("TLS settings", "skipped")
        output.print_action("route", "updated")
        text = self.console.export_text()

        self.assertIn(f"{output.ICON_OK} Created server", text)
        self.assertIn("Skipped TLS settings, already present", text)
        self.assertIn(f"{output.ICON_UPDATED} Updated route", text)


if __name__ == "__main__":
    unittest.main()
