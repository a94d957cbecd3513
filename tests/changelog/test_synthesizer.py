import unittest
from datetime import date, datetime, timezone

from squash_release.changelog.synthesizer import (
    ChangelogSection,
    compare_link,
    describe_commit,
    render_section,
    synthesize,
)
from squash_release.grammar.commit_classifier import classify_commits
from squash_release.grammar.rules import default_grammar
from squash_release.vcs.source import Commit
from squash_release.versioning.semver import SemanticVersion


REPO_URL = "https://github.com/user/repo"


def make_commits(*messages):
    return [
        Commit(
            identifier=f"{index:08x}" + "0" * 32,
            message=message,
            author="Jane Doe",
            timestamp=datetime(2024, 5, 5, 12, index, tzinfo=timezone.utc),
        )
        for index, message in enumerate(messages, start=1)
    ]


class TestSynthesize(unittest.TestCase):
    def setUp(self) -> None:
        self.grammar = default_grammar()

    def test_groups_follow_grammar_order_and_commit_order(self) -> None:
        commits = make_commits(
            "docs: describe setup",
            "fix: handle empty tag",
            "style: wrap lines",
            "feat: add login form",
            "wip not conventional",
            "break(api): remove endpoint",
        )
        section = synthesize(
            SemanticVersion(1, 0, 0),
            date(2024, 5, 5),
            classify_commits(commits, self.grammar),
            self.grammar,
        )
        self.assertEqual([label for label, _ in section.groups], ["Production", "Development", "Documentation"])
        production = dict(section.groups)["Production"]
        self.assertEqual(
            production,
            (
                "fix: handle empty tag (00000002)",
                "feat: add login form (00000004)",
                "break(api): remove endpoint (00000006)",
            ),
        )
        self.assertEqual(section.entry_count, 5)
        self.assertIsNone(section.compare_url)

    def test_unclassified_commits_are_left_out(self) -> None:
        commits = make_commits("wip", "merge branch main")
        section = synthesize(SemanticVersion(0, 1, 0), date(2024, 1, 1), classify_commits(commits, self.grammar), self.grammar)
        self.assertEqual(section.groups, ())
        self.assertEqual(render_section(section), "## v0.1.0 (2024-01-01)\n")

    def test_links_with_repository_url(self) -> None:
        commits = make_commits("feat: add login form")
        section = synthesize(
            SemanticVersion(3, 3, 0),
            date(2024, 5, 5),
            classify_commits(commits, self.grammar),
            self.grammar,
            previous=SemanticVersion(3, 2, 1),
            repository_url=REPO_URL + "/",
        )
        self.assertEqual(section.compare_url, f"{REPO_URL}/compare/v3.2.1..v3.3.0")
        self.assertEqual(
            dict(section.groups)["Production"],
            (f"feat: add login form ([00000001]({REPO_URL}/commit/{commits[0].identifier}))",),
        )

    def test_only_summary_line_is_listed(self) -> None:
        commits = make_commits("feat: add login form\n\nLong body explaining the change.")
        classified = [item for item in classify_commits(commits, self.grammar)]
        self.assertEqual(describe_commit(classified[0]), "feat: add login form (00000001)")

    def test_compare_link_for_first_release(self) -> None:
        self.assertEqual(compare_link(REPO_URL, "v0.1.0"), f"{REPO_URL}/releases/tag/v0.1.0")
        self.assertIsNone(compare_link(None, "v0.1.0", "v0.0.1"))


class TestRenderSection(unittest.TestCase):
    def test_render_is_deterministic_markdown(self) -> None:
        section = ChangelogSection(
            version=SemanticVersion(4, 0, 0),
            date=date(2023, 5, 5),
            groups=(
                ("Production", ("break: new breaking (1ebdf43e)", "feat: new feature (172cd158)")),
                ("Development", ("style: style change (cd2fe770)",)),
            ),
            compare_url=f"{REPO_URL}/compare/v3.2.1..v4.0.0",
        )
        expected = (
            f"## [v4.0.0]({REPO_URL}/compare/v3.2.1..v4.0.0) (2023-05-05)\n"
            "\n"
            "### Production\n"
            "\n"
            "* break: new breaking (1ebdf43e)\n"
            "* feat: new feature (172cd158)\n"
            "\n"
            "### Development\n"
            "\n"
            "* style: style change (cd2fe770)\n"
        )
        self.assertEqual(render_section(section), expected)
        self.assertEqual(render_section(section), render_section(section))


if __name__ == "__main__":
    unittest.main()
