#!/usr/bin/env python3
"""Rule engine for include/exclude evaluation.

This module decides whether a candidate path is excluded:
- Ordered rule lists, first match wins
- A session-wide rule list consulted before an optional local list
- Default-include when nothing matches
- ``.`` is never excluded

Example:
    >>> rules = RuleList()
    >>> rules.add("+ *.keep")
    >>> rules.add("- *")
    >>> engine = RuleEngine(rules)
    >>> engine.is_excluded("a.keep")
    False
    >>> engine.is_excluded("a.tmp")
    True
"""

import os
import stat
from typing import Iterable, Optional

from syncfilter.infrastructure.logger import get_logger
from syncfilter.rules.patterns import Rule
from syncfilter.rules.store import RuleList

logger = get_logger("syncfilter.rules")


class RuleEngine:
    """Evaluates candidate paths against ordered rule lists.

    The engine owns no rules of its own: ``rules`` is the session's global
    list and callers may pass a per-directory ``local_rules`` list to each
    call.
    """

    def __init__(self, rules: Optional[RuleList] = None):
        """Initialize rule engine.

        Args:
            rules: Session-wide rule list (a new empty list by default)
        """
        self.rules = rules if rules is not None else RuleList()

    def find_match(
        self, name: str, is_dir: bool = False, local_rules: Optional[Iterable[Rule]] = None
    ) -> Optional[Rule]:
        """Return the rule deciding *name*, or None.

        Args:
            name: Candidate path
            is_dir: Whether the candidate is a directory
            local_rules: Rules consulted after the global list

        Returns:
            First matching rule in list order
        """
        if name == ".":
            return None

        for rule_list in (self.rules, local_rules):
            if not rule_list:
                continue
            for rule in rule_list:
                if rule.matches(name, is_dir):
                    self._report(name, rule, is_dir)
                    return rule

        return None

    def is_excluded(
        self, name: str, is_dir: bool = False, local_rules: Optional[Iterable[Rule]] = None
    ) -> bool:
        """Determine if a path is excluded.

        Args:
            name: Candidate path
            is_dir: Whether the candidate is a directory
            local_rules: Rules consulted after the global list

        Returns:
            True if the first matching rule is an exclude rule
        """
        rule = self.find_match(name, is_dir, local_rules)
        return rule is not None and not rule.include

    def is_included(
        self, name: str, is_dir: bool = False, local_rules: Optional[Iterable[Rule]] = None
    ) -> bool:
        """Negation of :meth:`is_excluded`."""
        return not self.is_excluded(name, is_dir, local_rules)

    def check_stat(
        self, name: str, st: os.stat_result, local_rules: Optional[Iterable[Rule]] = None
    ) -> bool:
        """Like :meth:`is_excluded`, taking the directory flag from a stat result."""
        return self.is_excluded(name, stat.S_ISDIR(st.st_mode), local_rules)

    def _report(self, name: str, rule: Rule, is_dir: bool) -> None:
        logger.debug(
            f"{'including' if rule.include else 'excluding'} "
            f"{'directory' if is_dir else 'file'} {name} because of pattern {rule}"
        )

    def __len__(self) -> int:
        """Return number of global rules."""
        return len(self.rules)
