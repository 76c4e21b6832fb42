"""syncfilter Core - Shared constants and validation.

Import specific names from submodules:
    from syncfilter.core.constants import ErrorCode, Limits
    from syncfilter.core.validators import ValidationError
"""

from syncfilter.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
