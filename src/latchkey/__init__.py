"""Latchkey - credential and session authentication service.

Registers users, authenticates them against stored password hashes, issues
bearer tokens and supports a self-service password reset flow.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
