"""Command line entry point.

    lighttight materials build.litematic
    lighttight replace build.litematic out.litematic [--pattern ID] [--with ID]
    lighttight optimize build.litematic out.litematic [--origin-block ID] [--inside X Y Z]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .config import (
    DEFAULT_ORIGIN_BLOCK,
    DEFAULT_REPLACE_PATTERN,
    DEFAULT_REPLACEMENT,
    OptimizeConfig,
    Settings,
    load_shape_catalog,
)
from .errors import LighttightError
from .litematic import BlockState, read_litematic, write_litematic
from .materials import count_materials, format_materials, replace_blocks, sorted_materials
from .optimize import optimize_structure

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LEAK = 1
EXIT_ERROR = 2


def output_name(path: Path) -> str:
    name = path.name
    if name.endswith(".litematic"):
        name = name[: -len(".litematic")]
    return name


def _cmd_materials(args: argparse.Namespace) -> int:
    structure = read_litematic(Path(args.input))
    counter = count_materials(structure)
    if args.json:
        print(json.dumps(dict(sorted_materials(counter)), indent=2))
    else:
        print(format_materials(counter))
    return EXIT_OK


def _cmd_replace(args: argparse.Namespace) -> int:
    try:
        replacement = BlockState.parse(args.replacement)
    except ValueError as e:
        print(f"[error] {e}", file=sys.stderr)
        return EXIT_ERROR
    out_path = Path(args.output)
    structure = read_litematic(Path(args.input))
    out, replaced = replace_blocks(structure, output_name(out_path), args.pattern, replacement)
    write_litematic(out, out_path)
    print(f"[done] replaced {replaced} block(s), wrote {out_path}")
    return EXIT_OK


def _cmd_optimize(args: argparse.Namespace) -> int:
    try:
        config = OptimizeConfig(
            origin_block=args.origin_block,
            inside=tuple(args.inside) if args.inside else None,
            rainbow=args.rainbow,
            keep_boundary=args.keep_boundary,
            max_steps=args.max_steps,
            skip_missing_origin=args.skip_missing_origin,
        )
    except ValidationError as e:
        print(f"[error] invalid options: {e}", file=sys.stderr)
        return EXIT_ERROR

    catalog = load_shape_catalog(Path(args.shapes) if args.shapes else None)
    out_path = Path(args.output)
    structure = read_litematic(Path(args.input))
    out, reports = optimize_structure(structure, output_name(out_path), catalog, config)
    write_litematic(out, out_path)

    for r in reports:
        if r.skipped:
            print(f"region {r.name}: skipped (no {config.origin_block})")
        elif r.leaked:
            print(f"region {r.name}: LEAK into {list(config.inside or ())}, path of {len(r.leak_path) - 1} block(s)")
        else:
            print(f"region {r.name}: origin={list(r.origin or ())} lit={r.reachable} removed={r.removed}")
    if args.json:
        print(json.dumps([r.to_dict() for r in reports], indent=2, sort_keys=True))
    print(f"[done] wrote {out_path}")
    return EXIT_LEAK if any(r.leaked for r in reports) else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="lighttight", description="Make Litematica builds light-tight and find light leaks.")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug).")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("materials", help="Count blocks needed to build a schematic.")
    p.add_argument("input", help="Input .litematic")
    p.add_argument("--json", action="store_true", help="Output JSON instead of text.")
    p.set_defaults(func=_cmd_materials)

    p = sub.add_parser("replace", help="Swap blocks whose id contains a pattern.")
    p.add_argument("input", help="Input .litematic")
    p.add_argument("output", help="Output .litematic")
    p.add_argument("--pattern", default=DEFAULT_REPLACE_PATTERN, help=f"Substring of block ids to replace (default: {DEFAULT_REPLACE_PATTERN}).")
    p.add_argument("--with", dest="replacement", default=DEFAULT_REPLACEMENT, help=f"Replacement block state (default: {DEFAULT_REPLACEMENT}).")
    p.set_defaults(func=_cmd_replace)

    p = sub.add_parser("optimize", help="Remove every block the light from the origin block cannot reach.")
    p.add_argument("input", help="Input .litematic")
    p.add_argument("output", help="Output .litematic")
    p.add_argument("--origin-block", default=DEFAULT_ORIGIN_BLOCK, help=f"Block id marking the light source (default: {DEFAULT_ORIGIN_BLOCK}).")
    p.add_argument("--inside", nargs=3, type=int, metavar=("X", "Y", "Z"), default=None, help="Protected interior position; report a leak path if the light reaches it.")
    p.add_argument("--rainbow", action="store_true", help="Paint lit air by distance from the origin.")
    p.add_argument("--keep-boundary", action="store_true", help="Never remove blocks on the outer layer of a region.")
    p.add_argument("--shapes", default=None, help="JSON shape table extending the built-in block shapes.")
    p.add_argument("--max-steps", type=int, default=None, help="Give up after this many search steps per region.")
    p.add_argument("--skip-missing-origin", action="store_true", help="Copy regions without an origin block unchanged instead of failing.")
    p.add_argument("--json", action="store_true", help="Also print per-region reports as JSON.")
    p.set_defaults(func=_cmd_optimize)
    return ap


def _configure_logging(verbose: int) -> None:
    level = Settings.from_env().log_level
    if verbose >= 2:
        level = "DEBUG"
    elif verbose == 1:
        level = "INFO"
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except LighttightError as e:
        print(f"[error] {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
