#!/usr/bin/env python3
"""Command-line interface for syncfilter.

This module provides the CLI for checking paths against include/exclude rules:
- Rule options applied in command-line order
- Configuration file loading
- Logging setup from -v counts or configuration
- Writing the wire form of the rule list for a peer

Example:
    >>> from syncfilter.cli import parse_arguments
    >>> args = parse_arguments(["--exclude", "*.o", "src/util.o"])
"""

import argparse
import io
import os
import sys
from typing import List, Optional, Tuple

from syncfilter.core.constants import SYNCFILTER_VERSION, ConfigKey, ErrorCode
from syncfilter.core.validators import ValidationError, validate_protocol_version
from syncfilter.infrastructure.config_manager import ConfigError, ConfigManager, ConfigSource
from syncfilter.infrastructure.logger import Logger, configure_logging, verbosity_to_level
from syncfilter.rules.engine import RuleEngine
from syncfilter.rules.store import RuleFileError, RuleList
from syncfilter.rules.wire import ProtocolError, StreamChannel, send_rule_list

DESCRIPTION = "syncfilter - include/exclude path filtering"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class OrderedRuleAction(argparse.Action):
    """Collects rule options into one list, keeping their relative order."""

    def __call__(self, parser, namespace, values, option_string=None):
        sources = getattr(namespace, "rule_sources", None) or []
        sources.append((self.const, values))
        namespace.rule_sources = sources


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
    """
    parser = argparse.ArgumentParser(
        prog="syncfilter",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Is an object file excluded?
  syncfilter --exclude '*.o' src/util.o

  # Keep *.keep files, drop everything else
  syncfilter --include '*.keep' --exclude '*' a.keep a.tmp

  # Default version-control ignore set, explain decisions
  syncfilter -C --explain CVS/ main.c~

  # Write the rule list as sent to a protocol 20 peer
  syncfilter --exclude-from rules.txt --send rules.bin --protocol 20
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {SYNCFILTER_VERSION}",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    parser.add_argument(
        "paths",
        metavar="PATH",
        nargs="*",
        help="Candidate paths to check (a trailing / marks a directory)",
    )

    # Rule options, applied in the order given
    rule_group = parser.add_argument_group("rule options")

    rule_group.add_argument(
        "--exclude",
        metavar="PATTERN",
        action=OrderedRuleAction,
        const="exclude",
        dest="rule_sources",
        help="Exclude paths matching PATTERN",
    )

    rule_group.add_argument(
        "--include",
        metavar="PATTERN",
        action=OrderedRuleAction,
        const="include",
        dest="rule_sources",
        help="Do not exclude paths matching PATTERN",
    )

    rule_group.add_argument(
        "--exclude-from",
        metavar="FILE",
        action=OrderedRuleAction,
        const="exclude-from",
        dest="rule_sources",
        help="Read exclude patterns from FILE (- for stdin)",
    )

    rule_group.add_argument(
        "--include-from",
        metavar="FILE",
        action=OrderedRuleAction,
        const="include-from",
        dest="rule_sources",
        help="Read include patterns from FILE (- for stdin)",
    )

    rule_group.add_argument(
        "--filter-line",
        metavar="LINE",
        action=OrderedRuleAction,
        const="line",
        dest="rule_sources",
        help="Whitespace-separated exclude patterns ('+ ' marks includes)",
    )

    rule_group.add_argument(
        "-C",
        "--cvs-exclude",
        action="store_true",
        help="Add the default version-control ignore set",
    )

    rule_group.add_argument(
        "-0",
        "--from0",
        action="store_true",
        help="Rule files are NUL terminated",
    )

    # Check options
    check_group = parser.add_argument_group("check options")

    check_group.add_argument(
        "-d",
        "--dir",
        action="store_true",
        help="Treat paths that do not exist as directories",
    )

    check_group.add_argument(
        "--explain",
        action="store_true",
        help="Show the pattern that decided each path",
    )

    # Peer options
    peer_group = parser.add_argument_group("peer options")

    peer_group.add_argument(
        "--send",
        metavar="FILE",
        type=str,
        help="Write the rule list in wire form to FILE (- for stdout)",
    )

    peer_group.add_argument(
        "--protocol",
        metavar="N",
        type=int,
        help="Protocol version of the peer",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-vv shows every rule decision)",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also log to FILE",
    )

    parsed = parser.parse_args(args)
    if parsed.rule_sources is None:
        parsed.rule_sources = []

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    if not args.paths and not args.send:
        raise CLIError("Nothing to do: give PATH arguments or --send\nUse --help for usage information")

    if args.protocol is not None:
        try:
            validate_protocol_version(args.protocol)
        except ValidationError as e:
            raise CLIError(str(e))

    if args.config and not os.path.isfile(args.config):
        raise CLIError(f"Configuration file does not exist: {args.config}", ErrorCode.FILE_IO)


def load_config(args: argparse.Namespace) -> ConfigManager:
    """
    Build the configuration from files, environment and arguments.

    The system and user config files are read when present; ``--config``
    takes the place of the user file.

    Raises:
        ConfigError: If a configuration file is invalid
    """
    config = ConfigManager()
    config.load_defaults_files()
    if args.config:
        config.load_file(args.config, ConfigSource.USER_CONFIG)
    root = ConfigKey.ROOT

    if args.from0:
        config.set(f"{root}.{ConfigKey.FILTER_NULLS}", True, ConfigSource.CLI_ARGS)
    if args.cvs_exclude:
        config.set(f"{root}.{ConfigKey.FILTER_CVS}", True, ConfigSource.CLI_ARGS)
    if args.protocol is not None:
        config.set(f"{root}.{ConfigKey.PROTOCOL_VERSION}", args.protocol, ConfigSource.CLI_ARGS)
    if args.verbose:
        config.set(
            f"{root}.{ConfigKey.LOGGING_LEVEL}",
            verbosity_to_level(args.verbose).name,
            ConfigSource.CLI_ARGS,
        )
    if args.log_file:
        config.set(f"{root}.{ConfigKey.LOGGING_FILE}", args.log_file, ConfigSource.CLI_ARGS)

    config.validate()
    return config


def setup_logging(config: ConfigManager) -> Logger:
    """
    Setup logging based on configuration.

    Returns:
        Configured root logger
    """
    section = config.section()
    logging_config = section.get(ConfigKey.LOGGING, {})
    return configure_logging(
        level=logging_config.get("level") or "WARNING",
        log_file=logging_config.get("file"),
    )


def build_rule_list(args: argparse.Namespace, config: ConfigManager) -> RuleList:
    """
    Build the session rule list.

    Configured rules come first, then configured rule files, then the rule
    options in command-line order, then the default ignore set if enabled.

    Raises:
        RuleFileError: If a rule file cannot be read
    """
    section = config.section()
    filter_config = section.get(ConfigKey.FILTER, {})

    rules = RuleList(eol_nulls=bool(filter_config.get("nulls")))

    for pattern in filter_config.get("rules") or []:
        rules.add(pattern, include=False)

    for fname in filter_config.get("files") or []:
        rules.add_file(fname, fatal=True, include=False)

    for kind, value in args.rule_sources:
        if kind == "exclude":
            rules.add(value, include=False)
        elif kind == "include":
            rules.add(value, include=True)
        elif kind == "exclude-from":
            rules.add_file(value, fatal=True, include=False)
        elif kind == "include-from":
            rules.add_file(value, fatal=True, include=True)
        elif kind == "line":
            rules.add_line(value, include=False)

    if filter_config.get("cvs"):
        rules.add_cvs_excludes()

    return rules


def candidate(path: str, assume_dir: bool) -> Tuple[str, bool]:
    """
    Normalize a PATH argument into ``(name, is_dir)``.

    A trailing slash marks a directory; otherwise an existing path is
    checked on disk, and ``assume_dir`` applies to the rest.
    """
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/", True
    if os.path.exists(path):
        return path, os.path.isdir(path)
    return path, assume_dir


def check_paths(engine: RuleEngine, args: argparse.Namespace) -> List[str]:
    """
    Evaluate each PATH argument.

    Returns:
        One output line per path
    """
    lines = []
    for path in args.paths:
        name, is_dir = candidate(path, args.dir)
        rule = engine.find_match(name, is_dir)
        verdict = "excluded" if rule is not None and not rule.include else "included"
        line = f"{verdict} {path}"
        if args.explain and rule is not None:
            line += f" (pattern {rule.wire_text()})"
        lines.append(line)
    return lines


def write_wire(rules: RuleList, target: str, remote_version: int) -> None:
    """
    Write the wire form of a rule list.

    The message is built in memory first, so a rejected list leaves the
    target untouched.

    Raises:
        UnsupportedFeatureError: If the peer cannot receive include rules
        ProtocolOverflowError: If an entry is too long for the peer
    """
    buf = io.BytesIO()
    send_rule_list(StreamChannel(buf), rules, remote_version)

    if target == "-":
        sys.stdout.buffer.write(buf.getvalue())
        sys.stdout.buffer.flush()
        return

    try:
        with open(target, "wb") as f:
            f.write(buf.getvalue())
    except OSError as e:
        raise CLIError(f"Failed to write {target}: {e}", ErrorCode.FILE_IO)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status (an ErrorCode value)
    """
    try:
        args = parse_arguments(argv)
        config = load_config(args)
        logger = setup_logging(config)

        rules = build_rule_list(args, config)
        logger.info("rule list ready", rules=len(rules))

        if args.send:
            remote_version = validate_protocol_version(
                config.get(f"{ConfigKey.ROOT}.{ConfigKey.PROTOCOL_VERSION}")
            )
            write_wire(rules, args.send, remote_version)

        if args.paths:
            for line in check_paths(RuleEngine(rules), args):
                print(line)

        return ErrorCode.SUCCESS

    except (CLIError, ConfigError, ValidationError, RuleFileError, ProtocolError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.error_code

    except MemoryError:
        print("Error: out of memory", file=sys.stderr)
        return ErrorCode.OUT_OF_MEMORY

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        return ErrorCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
