#!/usr/bin/env python3
"""Dump the trade server's OpenAPI schema for client generation.

    python scripts/generate_openapi.py --out openapi.json --format json
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ranchtrade.api.routes import app


def generate_schema_dict(tags: list[str] | None = None) -> dict:
    """Return the app's OpenAPI schema, optionally restricted to routes carrying `tags`."""
    schema = app.openapi()
    if not tags:
        return schema
    wanted = set(tags)
    paths = {}
    for path, operations in schema.get("paths", {}).items():
        kept = {m: op for m, op in operations.items() if wanted.intersection(op.get("tags", []))}
        if kept:
            paths[path] = kept
    return {**schema, "paths": paths}


def write_output(schema: dict, out_path: Path, fmt: str) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "yaml":
        import yaml

        out_path.write_text(yaml.safe_dump(schema, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        out_path.write_text(json.dumps(schema, indent=2, ensure_ascii=False), encoding="utf-8")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate the OpenAPI schema of the trade server.")
    parser.add_argument("--out", type=Path, default=Path("openapi.yaml"), help="Output file path (default: openapi.yaml)")
    parser.add_argument("--format", choices=["yaml", "json"], default="yaml", help="Output format (default: yaml)")
    parser.add_argument("--tag", action="append", dest="tags", help="Only include routes with this tag (repeatable)")
    args = parser.parse_args()

    schema = generate_schema_dict(args.tags)
    write_output(schema, args.out, args.format)
    print(f"OpenAPI schema ({len(schema.get('paths', {}))} paths) written to {args.out}")


if __name__ == "__main__":
    main()
