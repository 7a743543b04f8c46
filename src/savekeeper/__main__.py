from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import load_config
from .errors import SaveError
from .storage import FileStorage


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="savekeeper",
        description="Inspect and manage module save data",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--save-dir", type=Path, default=None, help="Override the save directory")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("path", help="Print the save directory")
    sub.add_parser("list", help="List modules that have save data")
    show = sub.add_parser("show", help="Print a module's stored payload")
    show.add_argument("module_id")
    delete = sub.add_parser("delete", help="Delete a module's save data")
    delete.add_argument("module_id")
    clear = sub.add_parser("clear", help="Delete all save data")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion (cannot be undone)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        save_dir = args.save_dir or config.save_dir
        storage = FileStorage(save_dir, extension=config.file_extension)

        if args.command == "path":
            print(storage.root)
        elif args.command == "list":
            for key in storage.keys():
                print(key)
        elif args.command == "show":
            payload = storage.read(args.module_id)
            if payload is None:
                print(f"No save data for module: {args.module_id}", file=sys.stderr)
                return 1
            print(payload)
        elif args.command == "delete":
            if not storage.delete(args.module_id):
                print(f"No save data for module: {args.module_id}", file=sys.stderr)
                return 1
            print(f"Deleted save data for module: {args.module_id}")
        elif args.command == "clear":
            if not args.yes:
                print("Refusing to delete all save data without --yes", file=sys.stderr)
                return 2
            print(f"Deleted {storage.clear()} save files")
    except (SaveError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
