import itertools
import unittest

from squash_release.grammar.aggregator import aggregate, is_release_due
from squash_release.grammar.rules import ReleaseSeverity


class TestAggregate(unittest.TestCase):
    def test_empty_window_is_none(self) -> None:
        self.assertIs(aggregate([]), ReleaseSeverity.NONE)
        self.assertFalse(is_release_due(aggregate([])))

    def test_highest_severity_wins(self) -> None:
        cases = [
            ([ReleaseSeverity.NONE], ReleaseSeverity.NONE),
            ([ReleaseSeverity.PATCH, ReleaseSeverity.NONE], ReleaseSeverity.PATCH),
            ([ReleaseSeverity.PATCH, ReleaseSeverity.MINOR, ReleaseSeverity.PATCH], ReleaseSeverity.MINOR),
            ([ReleaseSeverity.MAJOR, ReleaseSeverity.PATCH, ReleaseSeverity.MINOR], ReleaseSeverity.MAJOR),
        ]
        for severities, expected in cases:
            with self.subTest(severities=severities):
                self.assertIs(aggregate(severities), expected)

    def test_order_independent(self) -> None:
        severities = [
            ReleaseSeverity.PATCH,
            ReleaseSeverity.NONE,
            ReleaseSeverity.MINOR,
            ReleaseSeverity.PATCH,
        ]
        results = {aggregate(perm) for perm in itertools.permutations(severities)}
        self.assertEqual(results, {ReleaseSeverity.MINOR})

    def test_adding_a_commit_never_lowers_the_result(self) -> None:
        window = [ReleaseSeverity.NONE, ReleaseSeverity.MINOR]
        before = aggregate(window)
        for extra in ReleaseSeverity:
            with self.subTest(extra=extra):
                self.assertGreaterEqual(aggregate(window + [extra]), before)

    def test_accepts_generators(self) -> None:
        self.assertIs(aggregate(s for s in [ReleaseSeverity.PATCH]), ReleaseSeverity.PATCH)

    def test_release_due(self) -> None:
        self.assertTrue(is_release_due(ReleaseSeverity.PATCH))
        self.assertFalse(is_release_due(ReleaseSeverity.NONE))


if __name__ == "__main__":
    unittest.main()
