#!/usr/bin/env python3
"""Tests for RuleEngine evaluation."""

import os
from unittest.mock import patch

import pytest

from syncfilter.rules.engine import RuleEngine
from syncfilter.rules.patterns import Rule
from syncfilter.rules.store import RuleList


class TestRuleEngine:
    """Tests for first-match-wins evaluation."""

    def test_empty_engine_includes_everything(self):
        """No rules means nothing is excluded."""
        engine = RuleEngine()
        assert len(engine) == 0
        assert not engine.is_excluded("anything")
        assert engine.is_included("dir", is_dir=True)

    def test_exclude_object_file(self, make_rules):
        """*.o excludes an object file in a subdirectory."""
        engine = RuleEngine(make_rules("*.o"))
        assert engine.is_excluded("src/util.o")
        assert not engine.is_excluded("src/util.c")

    def test_anchored_directory_rule(self, make_rules):
        """/tmp/ excludes the tmp directory but not a tmp file."""
        engine = RuleEngine(make_rules("/tmp/"))
        assert engine.is_excluded("tmp", is_dir=True)
        assert not engine.is_excluded("tmp", is_dir=False)

    def test_include_before_exclude(self, make_rules):
        """An earlier include rule overrides a later catch-all exclude."""
        engine = RuleEngine(make_rules("+ *.keep", "- *"))
        assert not engine.is_excluded("a.keep")
        assert engine.is_excluded("a.tmp")

    def test_first_match_wins_over_specific(self, make_rules):
        """A later, more specific rule never overrides an earlier match."""
        engine = RuleEngine(make_rules("*.c", "+ main.c"))
        assert engine.is_excluded("main.c")

    def test_double_star_vs_single_star(self, make_rules):
        """** crosses directories where an anchored * does not."""
        assert RuleEngine(make_rules("**/bar")).is_excluded("x/y/bar")
        assert not RuleEngine(make_rules("/*/bar")).is_excluded("x/y/bar")

    @pytest.mark.parametrize("pattern", ["*", "**", ".", "/*", "+ x", "*/"])
    def test_dot_never_excluded(self, make_rules, pattern):
        """'.' is never excluded, whatever the rules say."""
        engine = RuleEngine(make_rules(pattern))
        assert not engine.is_excluded(".")
        assert not engine.is_excluded(".", is_dir=True)
        assert engine.find_match(".", is_dir=True) is None

    def test_dot_prefixed_names_are_filtered(self, make_rules):
        """Only the exact name '.' is special."""
        engine = RuleEngine(make_rules("*"))
        assert engine.is_excluded("./a")
        assert engine.is_excluded(".a")

    def test_local_rules_after_global(self, make_rules):
        """Local rules are consulted only when no global rule matches."""
        engine = RuleEngine(make_rules("+ *.h"))
        local = make_rules("*")
        assert not engine.is_excluded("x.h", local_rules=local)
        assert engine.is_excluded("x.c", local_rules=local)
        assert not engine.is_excluded("x.c")

    def test_local_rules_plain_list(self):
        """Any iterable of rules works as a local list."""
        engine = RuleEngine()
        local = [Rule.compile("+ keep"), Rule.compile("*")]
        assert not engine.is_excluded("keep", local_rules=local)
        assert engine.is_excluded("other", local_rules=local)

    def test_global_list_is_shared(self):
        """Rules added to the list after construction take effect."""
        rules = RuleList()
        engine = RuleEngine(rules)
        assert not engine.is_excluded("a.o")
        rules.add("*.o")
        assert engine.is_excluded("a.o")
        rules.add("!")
        assert not engine.is_excluded("a.o")

    def test_find_match_returns_rule(self, make_rules):
        """find_match returns the deciding rule."""
        rules = make_rules("*.c", "*.o")
        engine = RuleEngine(rules)
        assert engine.find_match("a.o") is rules[1]
        assert engine.find_match("a.h") is None

    def test_deterministic(self, make_rules):
        """Evaluating twice gives the same answer."""
        engine = RuleEngine(make_rules("+ a*", "*.o"))
        first = [engine.is_excluded(p) for p in ("ab.o", "b.o", "c")]
        second = [engine.is_excluded(p) for p in ("ab.o", "b.o", "c")]
        assert first == second == [False, True, False]

    def test_check_stat(self, make_rules, tmp_path):
        """check_stat reads the directory flag from a stat result."""
        (tmp_path / "build").mkdir()
        (tmp_path / "notes").write_text("x")
        engine = RuleEngine(make_rules("build/", "notes/"))
        assert engine.check_stat("build", os.stat(tmp_path / "build"))
        assert not engine.check_stat("notes", os.stat(tmp_path / "notes"))

    def test_reports_decision(self, make_rules):
        """A match logs the decision at debug level."""
        engine = RuleEngine(make_rules("*.o", "+ keep/"))
        with patch("syncfilter.rules.engine.logger") as mock_logger:
            engine.is_excluded("src/util.o")
            engine.is_excluded("keep", is_dir=True)

        messages = [call.args[0] for call in mock_logger.debug.call_args_list]
        assert messages == [
            "excluding file src/util.o because of pattern *.o",
            "including directory keep because of pattern keep/",
        ]

    def test_no_report_without_match(self, make_rules):
        """Nothing is logged when no rule matches."""
        engine = RuleEngine(make_rules("*.o"))
        with patch("syncfilter.rules.engine.logger") as mock_logger:
            engine.is_excluded("a.c")
        mock_logger.debug.assert_not_called()
