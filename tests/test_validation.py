"""Tests for validation module"""
import unittest

from devcaddy.validation import (
    validate_domain,
    validate_hostname,
    validate_port,
    validate_project,
    validate_provider,
    validate_settings,
)

OVH = {
    "name": "ovh",
    "endpoint": "https://eu.api.ovh.com/1.0",
    "application_key": "ak",
    "application_secret": "as",
    "consumer_key": "ck",
}


class ValidationTests(unittest.TestCase):
    def test_validate_domain(self):
        self.assertTrue(validate_domain("example.dev"))
        self.assertTrue(validate_domain("dev.Example.com"))
        self.assertTrue(validate_domain("localhost"))

        self.assertFalse(validate_domain(""))
        self.assertFalse(validate_domain("-example.dev"))
        self.assertFalse(validate_domain("example..dev"))
        self.assertFalse(validate_domain("*.example.dev"))
        self.assertFalse(validate_domain(42))

    def test_validate_hostname(self):
        self.assertTrue(validate_hostname("api"))
        self.assertTrue(validate_hostname("my-app"))
        self.assertTrue(validate_hostname("App1"))

        self.assertFalse(validate_hostname(""))
        self.assertFalse(validate_hostname("my_app"))  # underscore
        self.assertFalse(validate_hostname("my.app"))  # dot
        self.assertFalse(validate_hostname("-app"))
        self.assertFalse(validate_hostname("a" * 64))  # too long

    def test_validate_port(self):
        self.assertTrue(validate_port(1))
        self.assertTrue(validate_port(2019))
        self.assertTrue(validate_port(65535))

        self.assertFalse(validate_port(0))
        self.assertFalse(validate_port(65536))
        self.assertFalse(validate_port("2019"))
        self.assertFalse(validate_port(True))


class ProviderValidationTests(unittest.TestCase):
    def test_cloudflare_token_defaults(self):
        self.assertEqual(validate_provider({"name": "cloudflare"}), [])
        self.assertEqual(validate_provider({"name": "cloudflare", "api_token": "t"}), [])

    def test_cloudflare_empty_token(self):
        self.assertEqual(
            validate_provider({"name": "cloudflare", "api_token": ""}),
            ["provider.api_token: Cloudflare token is required"],
        )

    def test_ovh(self):
        self.assertEqual(validate_provider(OVH), [])

        errors = validate_provider({**OVH, "endpoint": "eu.api.ovh.com", "consumer_key": ""})
        self.assertIn("provider.endpoint: OVH endpoint must be a valid URL", errors)
        self.assertIn("provider.consumer_key: OVH consumer key is required", errors)

    def test_unknown_key(self):
        errors = validate_provider({"name": "cloudflare", "zone": "x"})
        self.assertEqual(errors, ["provider.zone: unrecognized key for provider 'cloudflare'"])

    def test_unknown_provider(self):
        errors = validate_provider({"name": "route53"})
        self.assertEqual(len(errors), 1)
        self.assertIn("unknown provider 'route53'", errors[0])

    def test_missing_name(self):
        self.assertEqual(validate_provider({}), ["provider.name: Provider name is required"])
        self.assertEqual(validate_provider("cloudflare"), ["provider: must be an object"])


class SettingsValidationTests(unittest.TestCase):
    def test_valid(self):
        is_valid, errors = validate_settings({"provider": {"name": "cloudflare"}, "domain": "example.dev"})
        self.assertTrue(is_valid)
        self.assertEqual(errors, [])

    def test_required_keys(self):
        is_valid, errors = validate_settings({})
        self.assertFalse(is_valid)
        self.assertIn("provider: required", errors)
        self.assertIn("domain: required", errors)

    def test_port_bounds(self):
        base = {"provider": {"name": "cloudflare"}, "domain": "example.dev"}
        self.assertIn("port: Port must be an integer", validate_settings({**base, "port": "2019"})[1])
        self.assertIn("port: Port must be greater than 0", validate_settings({**base, "port": 0})[1])
        self.assertIn("port: Port must be less than 65536", validate_settings({**base, "port": 70000})[1])

    def test_invalid_domain(self):
        _, errors = validate_settings({"provider": {"name": "cloudflare"}, "domain": "bad domain"})
        self.assertEqual(errors, ["domain: Invalid domain format ('bad domain')"])

    def test_unrecognized_key(self):
        _, errors = validate_settings({"provider": {"name": "cloudflare"}, "domain": "example.dev", "tld": "dev"})
        self.assertEqual(errors, ["tld: unrecognized key"])

    def test_not_an_object(self):
        self.assertEqual(validate_settings([]), (False, ["settings: must be a JSON object"]))


class ProjectValidationTests(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(validate_project({"hostnames": ["api", "web"]}), (True, []))

    def test_empty_list(self):
        self.assertEqual(
            validate_project({"hostnames": []}),
            (False, ["hostnames: At least one hostname must be provided"]),
        )

    def test_not_a_list(self):
        self.assertEqual(validate_project({"hostnames": "api"}), (False, ["hostnames: must be a list"]))

    def test_invalid_hostname(self):
        is_valid, errors = validate_project({"hostnames": ["api", "my_app"]})
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("hostnames[1]: 'my_app' is invalid."))


if __name__ == "__main__":
    unittest.main()
