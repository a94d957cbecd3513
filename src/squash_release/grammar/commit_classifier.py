"""
Classify commit messages against a release grammar.

Rules are evaluated in configured order and the first one whose pattern
matches at the start of the message decides the severity. This is a
first-match rule, not a best-match one: a general pattern listed before a
specific one shadows it, so configuration authors must put specific
patterns first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from squash_release.grammar.rules import Grammar, GrammarRule, ReleaseSeverity
from squash_release.vcs.source import Commit


@dataclass(frozen=True)
class ClassifiedCommit:
    """A commit together with the rule that classified it, if any."""

    commit: Commit
    rule: Optional[GrammarRule]

    @property
    def severity(self) -> ReleaseSeverity:
        return self.rule.severity if self.rule is not None else ReleaseSeverity.NONE

    @property
    def category(self) -> Optional[str]:
        return self.rule.category if self.rule is not None else None


def _message_of(commit: Union[Commit, str]) -> str:
    return commit.message if isinstance(commit, Commit) else commit


def match_rule(commit: Union[Commit, str], grammar: Grammar) -> Optional[GrammarRule]:
    """Return the first rule matching the message, or ``None``.

    The match is anchored at the beginning of the message
    (``Pattern.match``); a pattern occurring later in the text, e.g. in
    the commit body, does not count.
    """
    message = _message_of(commit)
    if not message or not message.strip():
        return None
    for rule in grammar.rules:
        if rule.pattern.match(message):
            return rule
    return None


def classify(commit: Union[Commit, str], grammar: Grammar) -> ReleaseSeverity:
    """Return the release severity implied by a single commit."""
    rule = match_rule(commit, grammar)
    return rule.severity if rule is not None else ReleaseSeverity.NONE


def classify_commits(commits: Iterable[Commit], grammar: Grammar) -> List[ClassifiedCommit]:
    """Classify every commit, keeping the supplied order."""
    return [ClassifiedCommit(commit=commit, rule=match_rule(commit, grammar)) for commit in commits]
