"""
Inspection CLI for a persisted LocalBase dataset.

Works on the SQLite file used by the sqlite storage backend:
- tables: List tables with row counts
- dump: Print one table's rows as JSON
- keys: List raw storage keys
- clear: Remove every persisted dataset

Usage:
    localbase-inspect tables
    localbase-inspect dump todos --limit 10
    localbase-inspect --data-dir ./.localbase clear --yes

Invariants:
    - Reads never modify the file
    - clear refuses to run without --yes
    - Output of dump is valid JSON for piping into jq

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for scripts
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Settings, StorageBackend
from ..logs import setup_logging
from ..persistence import PersistenceAdapter
from ..state import SharedState
from ..storage.base import KeyValueStore
from ..storage.sqlite import SqliteKeyValueStore

logger = logging.getLogger(__name__)


class InspectCLI:
    """Read and clear persisted datasets.

    Example:
        >>> cli = InspectCLI(store)
        >>> await cli.tables()
        {'todos': 3}
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.state = SharedState()
        self.persistence = PersistenceAdapter(store, self.state)

    async def _load(self) -> SharedState:
        if not self.store.is_connected:
            await self.store.connect()
        await self.persistence.hydrate()
        return self.state

    async def tables(self) -> Dict[str, int]:
        """Table names with their row counts."""
        state = await self._load()
        return {name: len(rows) for name, rows in state.database.items()}

    async def dump(self, table: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Rows of one table in insertion order.

        Raises:
            KeyError: If the table was never persisted
        """
        state = await self._load()
        if state.get_table(table) is None:
            raise KeyError(table)
        rows = state.rows(table)
        return rows[:limit] if limit is not None else rows

    async def keys(self) -> List[str]:
        if not self.store.is_connected:
            await self.store.connect()
        return await self.store.keys()

    async def clear(self) -> None:
        """Remove the session, user and database blobs."""
        if not self.store.is_connected:
            await self.store.connect()
        await self.persistence.clear_all()
        self.state.reset()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LocalBase dataset inspection tool")
    parser.add_argument("--data-dir", help="Directory holding the SQLite file")
    parser.add_argument("--file", help="SQLite file name inside the data directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("tables", help="List tables with row counts")

    dump_parser = subparsers.add_parser("dump", help="Print a table as JSON")
    dump_parser.add_argument("table", help="Table name")
    dump_parser.add_argument("--limit", type=int, help="Maximum rows to print")

    subparsers.add_parser("keys", help="List raw storage keys")

    clear_parser = subparsers.add_parser("clear", help="Remove every persisted dataset")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def _store_path(args: argparse.Namespace) -> Path:
    overrides: Dict[str, Any] = {"storage_backend": StorageBackend.SQLITE}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.file:
        overrides["sqlite_filename"] = args.file
    return Settings(**overrides).sqlite_path


async def run(args: argparse.Namespace, store: KeyValueStore) -> int:
    """Execute one parsed command. Returns the process exit code."""
    cli = InspectCLI(store)

    if args.command == "tables":
        tables = await cli.tables()
        if not tables:
            print("No tables")
        for name, count in sorted(tables.items()):
            print(f"{name}\t{count}")
        return 0

    if args.command == "dump":
        try:
            rows = await cli.dump(args.table, args.limit)
        except KeyError:
            print(f"Table not found: {args.table}", file=sys.stderr)
            return 1
        print(json.dumps(rows, indent=2, default=str))
        return 0

    if args.command == "keys":
        for key in await cli.keys():
            print(key)
        return 0

    if args.command == "clear":
        if not args.yes:
            print("Refusing to clear without --yes", file=sys.stderr)
            return 2
        await cli.clear()
        print("Cleared all datasets")
        return 0

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 2


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the inspection tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings(log_level="DEBUG" if args.verbose else "WARNING")
    setup_logging(settings)

    path = _store_path(args)
    if not path.exists():
        print(f"No dataset at {path}", file=sys.stderr)
        sys.exit(1)

    store = SqliteKeyValueStore(path)
    try:
        code = asyncio.run(run(args, store))
    except Exception as e:
        logger.error(f"Inspection failed: {e}", exc_info=args.verbose)
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
