"""syncfilter - include/exclude path filtering for file-tree synchronization."""

from syncfilter.core.constants import SYNCFILTER_VERSION as __version__
from syncfilter.rules import Rule, RuleEngine, RuleList

__all__ = ["__version__", "Rule", "RuleEngine", "RuleList"]
