#!/usr/bin/env python3
"""Add MySQL COMMENT clauses to DDL generated by ERD Concepts.

Usage:
    python fix_ddl.py schema.sql
    python fix_ddl.py schema.sql --out fixed.sql --config fix.yaml
    python fix_ddl.py schema.sql --out fixed.sql --check
"""

from __future__ import annotations

import argparse
import difflib
import sys
from pathlib import Path

try:
    import yaml
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required. Install with: pip install pyyaml") from exc

from mysql_fix import MAX_COMMENT_LENGTH, PASS_ORDER, StructuralError, fix_comments


def load_config(path: Path | None) -> dict:
    if path is None:
        return {}
    config = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Expected a mapping in {path}")
    return config


def fix_source(source: str, config: dict) -> str:
    passes = config.get("passes", list(PASS_ORDER))
    max_length = int(config.get("max_comment_length", MAX_COMMENT_LENGTH))
    if max_length < 3:
        raise ValueError(f"max_comment_length must be at least 3, got {max_length}")
    return fix_comments(source, passes=passes, max_length=max_length)


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def check_equal(path: Path, generated: str) -> bool:
    if not path.exists():
        print(f"[check] missing file: {path}", file=sys.stderr)
        return False

    existing = path.read_text(encoding="utf-8")
    if existing == generated:
        return True

    print(f"[check] drift detected: {path}", file=sys.stderr)
    diff = difflib.unified_diff(
        existing.splitlines(),
        generated.splitlines(),
        fromfile=str(path),
        tofile=f"fixed:{path}",
        lineterm="",
    )
    for idx, line in enumerate(diff):
        if idx > 200:
            print("... (diff truncated)", file=sys.stderr)
            break
        print(line, file=sys.stderr)
    return False


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add MySQL comments to DDL generated by ERD Concepts")
    parser.add_argument("source", help="SQL file generated by ERD Concepts")
    parser.add_argument("--out", default=None, help="Output SQL file (default: overwrite the source)")
    parser.add_argument("--config", default=None, help="YAML file with passes and max_comment_length")
    parser.add_argument("--check", action="store_true", help="Verify the output is up-to-date without writing")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    source_path = Path(args.source)
    out_path = Path(args.out) if args.out else source_path
    config = load_config(Path(args.config) if args.config else None)

    source = source_path.read_text(encoding="utf-8")
    try:
        fixed = fix_source(source, config)
    except StructuralError as exc:
        print(f"[error] {source_path}: {exc}", file=sys.stderr)
        return 1

    if args.check:
        return 0 if check_equal(out_path, fixed) else 1

    write_text(out_path, fixed)
    print(f"Fixed {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
