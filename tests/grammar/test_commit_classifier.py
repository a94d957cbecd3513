import unittest
from datetime import datetime, timezone

from squash_release.grammar.commit_classifier import classify, classify_commits, match_rule
from squash_release.grammar.rules import ReleaseSeverity, compile_grammar, default_grammar
from squash_release.vcs.source import Commit


def make_commit(message: str, identifier: str = "1ebdf43e8950d8f9dace2e554be5d387267575ef") -> Commit:
    return Commit(
        identifier=identifier,
        message=message,
        author="Jane Doe",
        timestamp=datetime(2024, 5, 5, 12, 0, tzinfo=timezone.utc),
    )


class TestClassify(unittest.TestCase):
    def setUp(self) -> None:
        self.grammar = default_grammar()

    def test_default_grammar_cases(self) -> None:
        cases = [
            ("break: add a function", ReleaseSeverity.MAJOR),
            ("break(api): remove endpoint", ReleaseSeverity.MAJOR),
            ("feat: a cool feature", ReleaseSeverity.MINOR),
            ("ci(github): run on tags", ReleaseSeverity.MINOR),
            ("docs: typo fix", ReleaseSeverity.MINOR),
            ("fix: handle empty tag", ReleaseSeverity.PATCH),
            ("style: some ref", ReleaseSeverity.PATCH),
            ("refac(core): split module", ReleaseSeverity.PATCH),
            ("broke: some change", ReleaseSeverity.NONE),
            ("feat introduced new function", ReleaseSeverity.NONE),
            ("feat: ends with punctuation.", ReleaseSeverity.NONE),
        ]
        for message, expected in cases:
            with self.subTest(message=message):
                self.assertEqual(classify(message, self.grammar), expected)

    def test_accepts_commit_objects(self) -> None:
        self.assertEqual(classify(make_commit("feat: login form"), self.grammar), ReleaseSeverity.MINOR)

    def test_empty_and_whitespace_messages_are_unclassified(self) -> None:
        permissive = compile_grammar([{"pattern": r".*", "severity": "patch", "category": "Any"}])
        for message in ("", "   ", "\n\t\n"):
            with self.subTest(message=repr(message)):
                self.assertEqual(classify(message, permissive), ReleaseSeverity.NONE)
                self.assertIsNone(match_rule(message, permissive))

    def test_first_matching_rule_wins(self) -> None:
        grammar = compile_grammar(
            [
                {"pattern": r"^feat", "severity": "minor", "category": "Features"},
                {"pattern": r"^feat\(core\)", "severity": "major", "category": "Core"},
            ]
        )
        self.assertEqual(classify("feat(core): x", grammar), ReleaseSeverity.MINOR)
        self.assertEqual(match_rule("feat(core): x", grammar).category, "Features")

    def test_specific_rule_listed_first_takes_precedence(self) -> None:
        grammar = compile_grammar(
            [
                {"pattern": r"^feat\(core\)", "severity": "major", "category": "Core"},
                {"pattern": r"^feat", "severity": "minor", "category": "Features"},
            ]
        )
        self.assertEqual(classify("feat(core): x", grammar), ReleaseSeverity.MAJOR)

    def test_match_is_anchored_at_message_start(self) -> None:
        grammar = compile_grammar([{"pattern": r"feat: ", "severity": "minor", "category": "Features"}])
        self.assertEqual(classify("chore: bump\n\nfeat: mentioned in body", grammar), ReleaseSeverity.NONE)
        self.assertEqual(classify("feat: real one", grammar), ReleaseSeverity.MINOR)


class TestClassifyCommits(unittest.TestCase):
    def test_preserves_order_and_rules(self) -> None:
        grammar = default_grammar()
        commits = [
            make_commit("docs: typo fix", "a" * 40),
            make_commit("wip", "b" * 40),
            make_commit("break(api): remove endpoint", "c" * 40),
        ]
        classified = classify_commits(commits, grammar)
        self.assertEqual([item.commit for item in classified], commits)
        self.assertEqual(
            [item.severity for item in classified],
            [ReleaseSeverity.MINOR, ReleaseSeverity.NONE, ReleaseSeverity.MAJOR],
        )
        self.assertEqual([item.category for item in classified], ["Documentation", None, "Production"])


if __name__ == "__main__":
    unittest.main()
