"""
Bridge Logging
==============
Structured logging setup and HTTP request logging.
"""

from .structured import RequestLoggingMiddleware, setup_logging

__all__ = [
    "RequestLoggingMiddleware",
    "setup_logging",
]
