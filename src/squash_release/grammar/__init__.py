"""
Commit grammar, classification and aggregation.

See :mod:`squash_release.grammar.rules` for the grammar model,
:mod:`squash_release.grammar.commit_classifier` for per-commit
classification and :mod:`squash_release.grammar.aggregator` for the
release decision over a whole window.
"""

from .aggregator import aggregate, is_release_due  # noqa: F401
from .commit_classifier import ClassifiedCommit, classify, classify_commits, match_rule  # noqa: F401
from .rules import (  # noqa: F401
    DEFAULT_RELEASE_RULES,
    Grammar,
    GrammarError,
    GrammarRule,
    ReleaseSeverity,
    compile_grammar,
    default_grammar,
)
