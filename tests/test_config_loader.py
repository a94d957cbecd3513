import json
import tempfile
import unittest
from pathlib import Path

from squash_release.config.loader import (
    CONFIG_FILE_NAME,
    ConfigError,
    load_config,
    parse_config,
)
from squash_release.grammar.rules import ReleaseSeverity


class TestConfigLoader(unittest.TestCase):
    """Tests for the configuration loader."""

    def test_missing_default_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = load_config(Path(tmp))
        self.assertEqual(config.changelog_path, "CHANGELOG.md")
        self.assertEqual(config.tag_prefix, "v")
        self.assertEqual(config.repository.provider, "git")
        self.assertIsNone(config.notifier)
        self.assertEqual(len(config.grammar), 6)
        self.assertEqual(config.grammar.categories, ("Production", "Development", "Documentation"))

    def test_load_config_success(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            data = {
                "changelog_path": "changelogs/CHANGELOG.md",
                "tag_prefix": "release-",
                "branch": "main",
                "request_timeout": 10,
                "repository": {"provider": "github", "owner": "acme", "repo": "rocket"},
                "release_rules": [
                    {"pattern": "^BREAKING", "severity": "major", "category": "Breaking"},
                    {"pattern": "^chore", "severity": "patch", "category": "Chores"},
                ],
                "notifier": {"url": "https://chat.acme.io", "channel_id": "abc123"},
            }
            (root / CONFIG_FILE_NAME).write_text(json.dumps(data))
            config = load_config(root)

        self.assertEqual(config.changelog_path, "changelogs/CHANGELOG.md")
        self.assertEqual(config.tag_prefix, "release-")
        self.assertEqual(config.branch, "main")
        self.assertEqual(config.request_timeout, 10.0)
        self.assertEqual(config.repository.url, "https://github.com/acme/rocket")
        self.assertEqual([rule.severity for rule in config.grammar], [ReleaseSeverity.MAJOR, ReleaseSeverity.PATCH])
        self.assertEqual(config.notifier.message, "New release")

    def test_explicit_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ConfigError):
                load_config(Path(tmp), Path(tmp) / "elsewhere.json")

    def test_invalid_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / CONFIG_FILE_NAME).write_text("{invalid}")
            with self.assertRaises(ConfigError):
                load_config(root)

    def test_invalid_rules_are_reported_before_use(self) -> None:
        cases = [
            {"release_rules": "feat"},
            {"release_rules": []},
            {"release_rules": [{"pattern": "^feat(", "severity": "minor", "category": "Production"}]},
            {"release_rules": [{"pattern": "^feat", "severity": "huge", "category": "Production"}]},
            {"release_rules": [{"pattern": "^feat", "severity": "minor"}]},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    parse_config(data)

    def test_invalid_fields(self) -> None:
        cases = [
            [],
            {"tag_prefix": 1},
            {"changelog_path": ""},
            {"request_timeout": 0},
            {"request_timeout": True},
            {"repository": {"provider": "svn"}},
            {"repository": {"provider": "github", "owner": "acme"}},
            {"notifier": {"url": "https://chat.acme.io"}},
            {"notifier": "https://chat.acme.io"},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    parse_config(data)

    def test_empty_tag_prefix_is_allowed(self) -> None:
        self.assertEqual(parse_config({"tag_prefix": ""}).tag_prefix, "")


if __name__ == "__main__":
    unittest.main()
