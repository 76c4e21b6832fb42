"""syncfilter Rules System.

This package decides which paths a file-tree operation includes:
- Rule / fnmatch: pattern compiler, glob dialect and single-rule matcher
- RuleList: ordered rule store fed by patterns, lines and rule files
- RuleEngine: first-match-wins evaluation over global and local lists
- send_rule_list / recv_rule_list: exchange of rule lists with a peer
"""

from .engine import RuleEngine
from .patterns import Rule, fnmatch, pathname_probe, translate
from .store import LineTooLongError, RuleFileError, RuleList, iter_lines, iter_tokens
from .wire import (
    Channel,
    ProtocolError,
    ProtocolOverflowError,
    StreamChannel,
    UnsupportedFeatureError,
    recv_rule_list,
    send_rule_list,
)

__all__ = [
    # Patterns
    "Rule",
    "fnmatch",
    "translate",
    "pathname_probe",
    # Store
    "RuleList",
    "RuleFileError",
    "LineTooLongError",
    "iter_lines",
    "iter_tokens",
    # Engine
    "RuleEngine",
    # Wire
    "Channel",
    "StreamChannel",
    "ProtocolError",
    "ProtocolOverflowError",
    "UnsupportedFeatureError",
    "send_rule_list",
    "recv_rule_list",
]
