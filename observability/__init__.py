"""Logging setup and context propagation.

setup_logging:
    Console + rotating file handlers, text or JSON format.

set_request_context / set_build_context / clear_context:
    Context variables stamped onto every log record.

Example:
    >>> from observability import setup_logging
    >>> setup_logging(config, verbose=True)
"""

from observability.logging import (
    clear_context,
    set_build_context,
    set_request_context,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "set_request_context",
    "set_build_context",
    "clear_context",
]
