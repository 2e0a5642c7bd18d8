"""Validate catalog files and export them for other tools.

Examples
--------
Check a seed catalog and print every pin::

    composebuilder-catalog seed.yaml --list

Convert it to the stored JSON form and emit the schema::

    composebuilder-catalog seed.yaml --json-out catalog.json --schema-out s.json

"""

from __future__ import annotations

import argparse
import typing as typ
from pathlib import Path

import msgspec

from .loader import load_catalog
from .schema import write_catalog_schema
from .validation import CatalogValidationError

if typ.TYPE_CHECKING:
    from .models import CatalogEntry


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="composebuilder-catalog",
        description="Validate a YAML or JSON service catalog.",
    )
    parser.add_argument("catalog", type=Path, help="catalog file (.yaml, .yml, .json)")
    parser.add_argument(
        "--json-out", type=Path, help="write the validated catalog as JSON"
    )
    parser.add_argument(
        "--schema-out", type=Path, help="write the catalog JSON Schema"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="print each entry's pinned version and sync settings",
    )
    return parser


def _describe(entry: CatalogEntry) -> str:
    sync = "sync" if entry.registry.sync else "no-sync"
    if entry.registry.channel:
        sync = f"{sync}:{entry.registry.channel}"
    image = entry.image or "-"
    return f"{entry.id}\t{image}\t{entry.version or '-'}\t{sync}"


def main(argv: list[str] | None = None) -> int:
    """Run the catalog command.

    Returns
    -------
    int
        0 when the catalog is valid, 1 when any validation issue was found.

    """
    args = _parser().parse_args(argv)
    path: Path = args.catalog

    try:
        entries = load_catalog(path)
    except CatalogValidationError as exc:
        print(f"Catalog validation failed for {path}:")
        print("\n".join(f"  - {issue}" for issue in exc.issues))
        return 1

    if args.json_out is not None:
        encoded = msgspec.json.encode(entries)
        args.json_out.write_bytes(msgspec.json.format(encoded, indent=2))
    if args.schema_out is not None:
        write_catalog_schema(args.schema_out)
    if args.list:
        for entry in entries:
            print(_describe(entry))

    pinned = sum(entry.is_pinned for entry in entries)
    print(f"catalog {path} is valid ({len(entries)} entries / {pinned} pinned)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
