# Core package initialization
# Cross-cutting concerns shared by every layer: configuration, errors,
# logging, security and HTTP helpers.

from . import config, exceptions, security

__all__ = [
    "config",
    "exceptions",
    "security",
]
