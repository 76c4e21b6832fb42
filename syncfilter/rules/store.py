#!/usr/bin/env python3
"""Ordered rule lists and the sources that populate them.

This module provides:
- RuleList: an ordered, append-only list of compiled rules with a clear
  operation (the ``!`` pattern)
- Line-oriented rule files (``\\n``/``\\r`` or NUL terminated, ``;``/``#``
  comments)
- Whitespace tokenizing of pattern lines that keeps ``+ ``/``- `` prefixes
- The built-in default ignore set plus ``~/.cvsignore`` and ``$CVSIGNORE``

Example:
    >>> rules = RuleList()
    >>> rules.add_line("+ *.c *.o")
    >>> [str(r) for r in rules]
    ['*.c', '*.o']
"""

import os
import re
import sys
from typing import BinaryIO, Iterator, List, Mapping, Optional, Union

from syncfilter.core.constants import (
    CLEAR_SENTINEL,
    CVS_IGNORE_ENV,
    CVS_IGNORE_FILENAME,
    DEFAULT_IGNORE_PATTERNS,
    ErrorCode,
    Limits,
)
from syncfilter.infrastructure.logger import get_logger
from syncfilter.rules.patterns import Rule

logger = get_logger("syncfilter.rules")

# C-locale whitespace, the only token delimiters in a pattern line
WHITESPACE = " \t\n\r\f\v"

_LINE_END = re.compile(b"[\r\n]")
_NUL_END = re.compile(b"\0")

RuleSource = Union[str, "os.PathLike[str]", BinaryIO]


class RuleFileError(Exception):
    """A rule file could not be read."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.FILE_IO):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class LineTooLongError(RuleFileError):
    """A rule file line reached the maximum line length."""


def iter_lines(
    stream: BinaryIO, eol_nulls: bool = False, max_length: int = Limits.MAX_PATH_LENGTH
) -> Iterator[bytes]:
    """Yield the lines of a binary stream without their terminators.

    Lines end at ``\\n`` or ``\\r``, or at NUL when ``eol_nulls`` is set. A
    final unterminated line is yielded too.

    Raises:
        LineTooLongError: If a line is ``max_length`` bytes or longer
    """
    terminator = _NUL_END if eol_nulls else _LINE_END
    pending = b""

    while True:
        chunk = stream.read(Limits.READ_CHUNK_SIZE)
        if not chunk:
            break
        *lines, pending = terminator.split(pending + chunk)
        for line in lines:
            _check_length(line, max_length)
            yield line
        _check_length(pending, max_length)

    if pending:
        yield pending


def _check_length(line: bytes, max_length: int) -> None:
    if len(line) >= max_length:
        raise LineTooLongError(
            f"rule line exceeds maximum length ({max_length}): {line[:40]!r}..."
        )


def iter_tokens(line: Optional[str]) -> Iterator[str]:
    """Split a pattern line on whitespace.

    A token starting with ``"+ "`` or ``"- "`` keeps that space, so
    ``"+ foo bar"`` yields ``"+ foo"`` and ``"bar"``.
    """
    if not line:
        return
    i = 0
    n = len(line)
    while True:
        while i < n and line[i] in WHITESPACE:
            i += 1
        if i >= n:
            return
        start = i
        if line[i] in "+-" and line[i + 1:i + 2] == " ":
            i += 2
        while i < n and line[i] not in WHITESPACE:
            i += 1
        yield line[start:i]


class RuleList:
    """Ordered list of compiled rules.

    One instance usually serves as the session-wide list; others are built
    for narrower scopes (a per-directory rule file, rules received from a
    peer) and passed to :class:`~syncfilter.rules.engine.RuleEngine` calls.
    """

    def __init__(self, eol_nulls: bool = False):
        """Initialize an empty rule list.

        Args:
            eol_nulls: Rule files use NUL instead of newline terminators
        """
        self._rules: List[Rule] = []
        self.eol_nulls = eol_nulls

    def add(self, pattern: str, include: bool = False) -> None:
        """Compile and append a pattern; ``"!"`` clears the list instead.

        Args:
            pattern: Raw pattern, optionally prefixed with ``"+ "``/``"- "``
            include: Polarity used when the pattern carries no prefix
        """
        if pattern == CLEAR_SENTINEL:
            logger.debug("clearing rule list", rules=len(self._rules))
            self.clear()
            return

        self._rules.append(Rule.compile(pattern, include))
        logger.debug(f"add rule {pattern}", polarity="include" if include else "exclude")

    def clear(self) -> None:
        """Remove every rule."""
        self._rules.clear()

    def add_line(self, line: Optional[str], include: bool = False) -> None:
        """Tokenize a pattern line and add each token.

        Args:
            line: Whitespace-separated patterns (None or empty is a no-op)
            include: Polarity used for tokens without a prefix
        """
        for token in iter_tokens(line):
            self.add(token, include)

    def add_include_line(self, line: Optional[str]) -> None:
        """Tokenize a pattern line, defaulting to include rules."""
        self.add_line(line, include=True)

    def load_lines(self, source: RuleSource, include: bool = False, fatal: bool = False) -> "RuleList":
        """Add every non-comment line of a rule file.

        Empty lines and lines starting with ``;`` or ``#`` are skipped. The
        file is read completely before any rule is added.

        Args:
            source: File path, ``"-"`` for standard input, or a binary stream
            include: Polarity used for lines without a prefix
            fatal: Raise instead of ignoring a source that cannot be read

        Returns:
            This list

        Raises:
            RuleFileError: If the source cannot be read and ``fatal`` is set
            LineTooLongError: If a line reaches the maximum line length
        """
        polarity = "include" if include else "exclude"

        try:
            if hasattr(source, "read"):
                lines = list(iter_lines(source, self.eol_nulls))
            elif source == "-":
                lines = list(iter_lines(sys.stdin.buffer, self.eol_nulls))
            else:
                with open(source, "rb") as f:
                    lines = list(iter_lines(f, self.eol_nulls))
        except OSError as e:
            if fatal:
                raise RuleFileError(f"failed to open {polarity} file {source}: {e}")
            logger.debug(f"skipping unreadable {polarity} file {source}", error=str(e))
            return self

        label = "<stream>" if hasattr(source, "read") else os.fsdecode(source)
        with logger.add_context(source=label):
            for raw in lines:
                line = os.fsdecode(raw)
                if line and line[0] not in ";#":
                    self.add(line, include)

        return self

    def add_file(self, fname: Optional[str], fatal: bool = False, include: bool = False) -> None:
        """Load a rule file by name; an empty name is ignored."""
        if not fname:
            return
        self.load_lines(fname, include=include, fatal=fatal)

    def add_cvs_excludes(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Add the default ignore set, ``~/.cvsignore`` and ``$CVSIGNORE``.

        Args:
            environ: Environment mapping (defaults to os.environ)
        """
        environ = os.environ if environ is None else environ

        for pattern in DEFAULT_IGNORE_PATTERNS:
            self.add(pattern, include=False)

        home = environ.get("HOME")
        if home and len(home) < Limits.MAX_PATH_LENGTH - Limits.HOME_SUFFIX_RESERVE:
            self.add_file(os.path.join(home, CVS_IGNORE_FILENAME), fatal=False, include=False)

        self.add_line(environ.get(CVS_IGNORE_ENV))

    def get_rules(self) -> List[Rule]:
        """Get a copy of the rules in order."""
        return self._rules.copy()

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __len__(self) -> int:
        """Return number of rules."""
        return len(self._rules)

    def __bool__(self) -> bool:
        """Return True if any rules are present."""
        return bool(self._rules)

    def __repr__(self) -> str:
        return f"RuleList({[str(r) for r in self._rules]!r})"
