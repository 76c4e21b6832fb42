#!/usr/bin/env python3
r"""Pattern compilation and matching for include/exclude rules.

This module provides the glob dialect used by filter rules and the
compiled :class:`Rule` record:
- ``fnmatch`` with and without pathname mode (``*``, ``?``, ``[...]``)
- ``**`` patterns that cross directory boundaries
- Root-anchored (leading ``/``) and directory-only (trailing ``/``) rules
- ``+ `` / ``- `` polarity prefixes

Example:
    >>> rule = Rule.compile("*.o")
    >>> rule.matches("src/util.o", is_dir=False)
    True
    >>> Rule.compile("/tmp/").matches("tmp", is_dir=False)
    False
"""

import functools
import re
import threading
from dataclasses import dataclass
from typing import Optional, Pattern

from syncfilter.core.constants import EXCLUDE_PREFIX, INCLUDE_PREFIX, Limits
from syncfilter.infrastructure.logger import get_logger

logger = get_logger("syncfilter.rules")

WILDCARD_CHARS = frozenset("*?[")

# Regular expression for glob patterns that can never match
NEVER_MATCH = "(?!)"

# POSIX character classes usable inside brackets, e.g. [[:digit:]]
CHARACTER_CLASSES = {
    "alnum": "a-zA-Z0-9",
    "alpha": "a-zA-Z",
    "blank": " \\t",
    "cntrl": "\\x00-\\x1f\\x7f",
    "digit": "0-9",
    "graph": "!-~",
    "lower": "a-z",
    "print": " -~",
    "punct": re.escape("!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    "space": " \\t\\n\\r\\f\\v",
    "upper": "A-Z",
    "xdigit": "0-9A-Fa-f",
}


def _translate_bracket(pat: str, i: int) -> Optional[tuple]:
    """Translate the bracket expression starting after ``[`` at *i*.

    Returns:
        ``(regex_set, next_index)`` or None if the bracket is unterminated
    """
    n = len(pat)
    j = i
    negate = False
    if j < n and pat[j] in "!^":
        negate = True
        j += 1

    members = []
    first = True
    while j < n:
        c = pat[j]
        if c == "]" and not first:
            break
        first = False
        if c == "[" and pat.startswith("[:", j):
            end = pat.find(":]", j + 2)
            if end >= 0 and pat[j + 2:end] in CHARACTER_CLASSES:
                members.append(CHARACTER_CLASSES[pat[j + 2:end]])
                j = end + 2
                continue
        if c == "\\" and j + 1 < n:
            j += 1
            c = pat[j]
        # Range: a-z (a trailing '-' is literal)
        if j + 2 < n and pat[j + 1] == "-" and pat[j + 2] != "]":
            hi = pat[j + 2]
            k = j + 3
            if hi == "\\" and k < n:
                hi = pat[k]
                k += 1
            if c <= hi:
                members.append(re.escape(c) + "-" + re.escape(hi))
            j = k
            continue
        members.append(re.escape(c))
        j += 1

    if j >= n:
        return None

    body = "".join(members)
    if negate:
        return ("[^%s]" % body if body else "[\\s\\S]"), j + 1
    return ("[%s]" % body if body else NEVER_MATCH), j + 1


def translate(pat: str, pathname: bool = False) -> str:
    """Translate a glob pattern to a regular expression.

    Args:
        pat: Glob pattern
        pathname: When True, ``*``, ``?`` and brackets never match ``/``

    Returns:
        Regular expression source for a full match
    """
    any_char = "[^/]" if pathname else "."
    i = 0
    n = len(pat)
    res = []
    while i < n:
        c = pat[i]
        i += 1
        if c == "*":
            # Runs of stars are equivalent to a single star here
            while i < n and pat[i] == "*":
                i += 1
            if pathname and pat.startswith("\\/", i):
                # A star never reaches an escaped slash in pathname mode
                return NEVER_MATCH
            res.append(any_char + "*")
        elif c == "?":
            res.append(any_char)
        elif c == "[":
            bracket = _translate_bracket(pat, i)
            if bracket is None:
                res.append("\\[")
            else:
                stuff, i = bracket
                res.append(("(?!/)" if pathname else "") + stuff)
        elif c == "\\":
            if i >= n:
                # Trailing lone backslash
                return NEVER_MATCH
            res.append(re.escape(pat[i]))
            i += 1
        else:
            res.append(re.escape(c))
    return "".join(res)


@functools.lru_cache(maxsize=Limits.PATTERN_CACHE_SIZE)
def _compile(pat: str, pathname: bool) -> Pattern:
    return re.compile(translate(pat, pathname), re.DOTALL)


def fnmatch(pat: str, name: str, pathname: bool = False) -> bool:
    """Test whether *name* matches the glob *pat*.

    Without ``pathname`` the wildcards match ``/`` like any other character,
    which is what lets ``**`` patterns span directories.
    """
    return _compile(pat, pathname).fullmatch(name) is not None


class _PathnameProbe:
    """Checks once whether pathname-mode matching lets ``*`` cross ``/``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._done = False
        self.broken = False

    def run(self) -> None:
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            self._done = True
            if fnmatch("a/b/*", "a/b/c/d", pathname=True):
                self.broken = True
                logger.warning("fnmatch pathname mode is broken on this system")


pathname_probe = _PathnameProbe()


@dataclass(frozen=True)
class Rule:
    """A compiled include/exclude rule.

    ``pattern`` never keeps a trailing ``/``; that is recorded in
    ``directory_only`` instead.
    """

    pattern: str
    include: bool = False
    directory_only: bool = False
    has_wildcard: bool = False
    has_double_star: bool = False
    double_star_prefix: bool = False
    slash_count: int = 0

    @classmethod
    def compile(cls, raw: str, include: bool = False) -> "Rule":
        """Compile a raw rule string.

        Args:
            raw: Pattern text, optionally prefixed with ``"+ "`` or ``"- "``
            include: Polarity used when the text carries no prefix

        Returns:
            Compiled rule
        """
        if raw.startswith(EXCLUDE_PREFIX):
            include = False
            raw = raw[2:]
        elif raw.startswith(INCLUDE_PREFIX):
            include = True
            raw = raw[2:]

        has_wildcard = not WILDCARD_CHARS.isdisjoint(raw)
        has_double_star = has_wildcard and "**" in raw
        double_star_prefix = has_double_star and raw.startswith("**")
        if has_double_star:
            pathname_probe.run()

        directory_only = len(raw) > 1 and raw.endswith("/")
        pattern = raw[:-1] if directory_only else raw

        return cls(
            pattern=pattern,
            include=include,
            directory_only=directory_only,
            has_wildcard=has_wildcard,
            has_double_star=has_double_star,
            double_star_prefix=double_star_prefix,
            slash_count=pattern.count("/"),
        )

    def matches(self, name: str, is_dir: bool = False) -> bool:
        """Check whether this rule matches a candidate path.

        Args:
            name: Candidate path, relative to the root of the transfer
            is_dir: Whether the candidate is a directory

        Returns:
            True if the rule matches
        """
        # Rules without a slash or "**" only look at the final component
        if not self.slash_count and not self.has_double_star:
            name = name.rpartition("/")[2]

        if not name:
            return False

        if self.directory_only and not is_dir:
            return False

        pattern = self.pattern
        anchored = pattern.startswith("/")
        if anchored:
            pattern = pattern[1:]
            if name.startswith("/"):
                name = name[1:]

        if self.has_wildcard:
            return self._matches_wildcard(pattern, name, anchored)

        if anchored:
            return name == pattern

        # Whole trailing components only
        if not name.endswith(pattern):
            return False
        return len(name) == len(pattern) or name[-len(pattern) - 1] == "/"

    def _matches_wildcard(self, pattern: str, name: str, anchored: bool) -> bool:
        pathname = not self.has_double_star

        if not anchored and self.slash_count and not self.has_double_star:
            # Match against the last slash_count + 1 components
            parts = name.split("/")
            if len(parts) > self.slash_count + 1:
                name = "/".join(parts[-(self.slash_count + 1):])

        if fnmatch(pattern, name, pathname):
            return True

        if self.double_star_prefix:
            # "**/foo" also matches "foo" at the root
            return pattern[2:3] == "/" and fnmatch(pattern[3:], name, pathname)

        if not anchored and self.has_double_star:
            # Infix or trailing "**" may start at any directory boundary
            start = name.find("/")
            while start >= 0:
                if fnmatch(pattern, name[start + 1:], pathname):
                    return True
                start = name.find("/", start + 1)

        return False

    def wire_text(self) -> str:
        """Text sent to a peer: pattern, directory slash, include prefix."""
        text = str(self)
        return INCLUDE_PREFIX + text if self.include else text

    def __str__(self) -> str:
        return self.pattern + "/" if self.directory_only else self.pattern
