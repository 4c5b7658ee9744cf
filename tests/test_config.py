"""Tests for CaddySettings, ProjectConfig and the DNS providers"""

import json
import sys
import tempfile
import unittest
from pathlib import Path

import pytest

from devcaddy.config import (
    CaddySettings,
    ProjectConfig,
    get_settings_file,
    is_production,
    write_project_config,
)
from devcaddy.errors import SettingsError
from devcaddy.providers import CloudflareProvider, OvhProvider, parse_provider


class TestProviders(unittest.TestCase):
    def test_parse_cloudflare_default_token(self):
        provider = parse_provider({"name": "cloudflare"})
        self.assertEqual(provider, CloudflareProvider())
        self.assertEqual(provider.to_caddy(), {"name": "cloudflare", "api_token": "{env.CLOUDFLARE_API_KEY}"})

    def test_parse_ovh(self):
        data = {
            "name": "ovh",
            "endpoint": "https://eu.api.ovh.com/1.0",
            "application_key": "ak",
            "application_secret": "as",
            "consumer_key": "ck",
        }
        provider = parse_provider(data)
        self.assertIsInstance(provider, OvhProvider)
        self.assertEqual(provider.to_caddy(), data)
        self.assertEqual(list(provider.to_caddy())[0], "name")

    def test_parse_invalid(self):
        with self.assertRaises(SettingsError) as ctx:
            parse_provider({"name": "route53"})
        self.assertIn("Invalid DNS provider", str(ctx.exception))
        self.assertEqual(len(ctx.exception.errors), 1)


class TestCaddySettings(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "caddy.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_load_defaults(self):
        self.path.write_text(json.dumps({"provider": {"name": "cloudflare"}, "domain": "example.dev"}))
        settings = CaddySettings.load(self.path)

        self.assertEqual(settings.provider, CloudflareProvider())
        self.assertEqual(settings.domain, "example.dev")
        self.assertEqual(settings.port, 2019)
        self.assertEqual(settings.path, self.path)
        self.assertEqual(settings.admin_address, "localhost:2019")
        self.assertEqual(settings.api_url, "http://localhost:2019")
        self.assertEqual(settings.wildcard, "*.example.dev")
        self.assertEqual(settings.url_for("api"), "https://api.example.dev")

    def test_load_missing(self):
        with self.assertRaises(SettingsError) as ctx:
            CaddySettings.load(self.path)
        self.assertIn("Run 'devcaddy setup' first", str(ctx.exception))

    def test_load_invalid_json(self):
        self.path.write_text("{not json")
        with self.assertRaises(SettingsError) as ctx:
            CaddySettings.load(self.path)
        self.assertIn("Failed to parse", str(ctx.exception))

    def test_load_reports_every_error(self):
        self.path.write_text(json.dumps({"port": 0, "extra": True}))
        with self.assertRaises(SettingsError) as ctx:
            CaddySettings.load(self.path)

        errors = ctx.exception.errors
        self.assertIn("provider: required", errors)
        self.assertIn("domain: required", errors)
        self.assertIn("port: Port must be greater than 0", errors)
        self.assertIn("extra: unrecognized key", errors)
        self.assertIn("  - domain: required", str(ctx.exception))

    def test_save_round_trip(self):
        settings = CaddySettings(provider=CloudflareProvider(api_token="t"), domain="example.dev", port=2020)
        saved = settings.save(Path(self.tmpdir.name) / "nested" / "caddy.json")

        self.assertEqual(json.loads(saved.read_text())["port"], 2020)
        self.assertEqual(CaddySettings.load(saved), settings)
        self.assertFalse(saved.with_suffix(".tmp").exists())

    @unittest.skipIf(sys.platform == "win32", "POSIX permissions")
    def test_save_is_owner_only(self):
        settings = CaddySettings(provider=CloudflareProvider(), domain="example.dev")
        saved = settings.save(self.path)
        self.assertEqual(saved.stat().st_mode & 0o777, 0o600)


def test_settings_file_env_override(monkeypatch, tmp_path: Path):
    target = tmp_path / "custom.json"
    monkeypatch.setenv("DEVCADDY_CONFIG", str(target))
    assert get_settings_file() == target.resolve()


def test_settings_file_default(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("DEVCADDY_CONFIG", raising=False)
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    assert get_settings_file() == tmp_path / ".devcaddy" / "caddy.json"


@pytest.mark.parametrize(
    "value, expected",
    [("production", True), ("Production ", True), ("development", False), ("", False)],
)
def test_is_production(monkeypatch, value, expected):
    monkeypatch.setenv("DEVCADDY_ENV", value)
    assert is_production() is expected


class TestProjectConfig(unittest.TestCase):
    """Tests for ProjectConfig class"""

    def test_default_config_no_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            project_dir = Path(tmpdir) / "My App"
            project_dir.mkdir()
            config = ProjectConfig(project_dir)

            self.assertFalse(config.exists())
            self.assertEqual(config.hostnames, ["my-app"])

    def test_load_yaml_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devcaddy.yml").write_text("hostnames:\n  - api\n  - api-v2\n")
            config = ProjectConfig(Path(tmpdir))

            self.assertTrue(config.exists())
            self.assertEqual(config.hostnames, ["api", "api-v2"])

    def test_yaml_extension(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devcaddy.yaml").write_text("hostnames: [web]\n")
            self.assertEqual(ProjectConfig(Path(tmpdir)).hostnames, ["web"])

    def test_yaml_search_parent_dirs(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "devcaddy.yml"
            config_file.write_text("hostnames: [parentapp]\n")

            child_dir = Path(tmpdir) / "subdir" / "deep"
            child_dir.mkdir(parents=True)

            config = ProjectConfig(child_dir)
            self.assertEqual(config.config_file, config_file.resolve())
            self.assertEqual(config.hostnames, ["parentapp"])

    def test_invalid_project_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devcaddy.yml").write_text("hostnames: []\n")
            with self.assertRaises(SettingsError) as ctx:
                ProjectConfig(Path(tmpdir))
            self.assertEqual(ctx.exception.errors, ["hostnames: At least one hostname must be provided"])

    def test_malformed_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "devcaddy.yml").write_text("hostnames: [api\n")
            with self.assertRaises(SettingsError):
                ProjectConfig(Path(tmpdir))

    def test_write_project_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_project_config(Path(tmpdir) / "devcaddy.yml", ["api", "docs"])
            self.assertEqual(path.read_text(), "hostnames:\n- api\n- docs\n")
            self.assertEqual(ProjectConfig(Path(tmpdir)).hostnames, ["api", "docs"])


if __name__ == "__main__":
    unittest.main()
