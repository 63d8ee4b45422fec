"""
CLI tools for LocalBase.

This module provides command-line tools for:
- inspect: List, dump and clear persisted datasets

Invariants:
    - Tools work offline against the storage file
    - Destructive commands require explicit confirmation
"""

from .inspect_cli import InspectCLI

__all__ = ["InspectCLI"]
