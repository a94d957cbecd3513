"""
Release severities and the commit grammar.

A :class:`Grammar` is an ordered, immutable list of :class:`GrammarRule`
objects. Each rule pairs a compiled regular expression with the release
severity it implies and the changelog category the matching commit is
listed under. Rules are compiled once, when the configuration is loaded,
so a broken pattern is reported at startup rather than per commit.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Pattern, Tuple


class GrammarError(Exception):
    """Raised when release rules cannot be compiled into a grammar."""

    pass


class ReleaseSeverity(enum.IntEnum):
    """Release magnitude implied by a commit or a whole release window."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    @classmethod
    def parse(cls, value: str) -> "ReleaseSeverity":
        """Return the severity named by a configuration value (``"minor"``)."""
        if not isinstance(value, str):
            raise GrammarError(f"Severity must be a string, got {value!r}")
        try:
            severity = cls[value.strip().upper()]
        except KeyError:
            raise GrammarError(
                f"Unknown severity '{value}'; expected one of: major, minor, patch"
            ) from None
        if severity is cls.NONE:
            raise GrammarError("A release rule cannot declare the 'none' severity")
        return severity

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class GrammarRule:
    """A single classification rule.

    Attributes
    ----------
    pattern : Pattern[str]
        Compiled expression matched against the start of a commit message.
    severity : ReleaseSeverity
        Severity implied by a matching commit.
    category : str
        Changelog heading the matching commit is listed under.
    """

    pattern: Pattern[str]
    severity: ReleaseSeverity
    category: str


@dataclass(frozen=True)
class Grammar:
    """Ordered set of rules; the first matching rule wins."""

    rules: Tuple[GrammarRule, ...] = field(default_factory=tuple)

    @property
    def categories(self) -> Tuple[str, ...]:
        """Category labels in the order they first appear in the rules."""
        seen = []
        for rule in self.rules:
            if rule.category not in seen:
                seen.append(rule.category)
        return tuple(seen)

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


def _conventional(types: str) -> str:
    return r"^(?P<type>" + types + r"){1}(?P<scope>\(\S.*\S\))?:\s.*[a-z0-9]$"


# Specific types come before general ones; order is significant.
DEFAULT_RELEASE_RULES: Tuple[Mapping[str, str], ...] = (
    {"pattern": _conventional("break"), "severity": "major", "category": "Production"},
    {"pattern": _conventional("feat"), "severity": "minor", "category": "Production"},
    {"pattern": _conventional("build|ci"), "severity": "minor", "category": "Development"},
    {"pattern": _conventional("docs"), "severity": "minor", "category": "Documentation"},
    {"pattern": _conventional("fix|perf|sec"), "severity": "patch", "category": "Production"},
    {"pattern": _conventional("refac|style|test"), "severity": "patch", "category": "Development"},
)


def compile_rule(raw: Mapping[str, Any], index: Optional[int] = None) -> GrammarRule:
    """Compile one ``{pattern, severity, category}`` mapping into a rule."""
    where = f"release rule #{index}" if index is not None else "release rule"
    if not isinstance(raw, Mapping):
        raise GrammarError(f"{where} must be an object, got {type(raw).__name__}")
    missing = [key for key in ("pattern", "severity", "category") if key not in raw]
    if missing:
        raise GrammarError(f"{where} is missing keys: {', '.join(missing)}")
    pattern = raw["pattern"]
    category = raw["category"]
    if not isinstance(pattern, str) or not pattern:
        raise GrammarError(f"{where}: 'pattern' must be a non-empty string")
    if not isinstance(category, str) or not category.strip():
        raise GrammarError(f"{where}: 'category' must be a non-empty string")
    try:
        severity = ReleaseSeverity.parse(raw["severity"])
    except GrammarError as exc:
        raise GrammarError(f"{where}: {exc}") from exc
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        raise GrammarError(f"{where}: invalid pattern {pattern!r}: {exc}") from exc
    return GrammarRule(pattern=compiled, severity=severity, category=category.strip())


def compile_grammar(raw_rules: Iterable[Mapping[str, Any]]) -> Grammar:
    """Compile configuration rules, keeping their order.

    Raises
    ------
    GrammarError
        If any rule is malformed or no rule is given.
    """
    rules = tuple(compile_rule(raw, index) for index, raw in enumerate(raw_rules, start=1))
    if not rules:
        raise GrammarError("At least one release rule is required")
    return Grammar(rules=rules)


def default_grammar() -> Grammar:
    return compile_grammar(DEFAULT_RELEASE_RULES)
