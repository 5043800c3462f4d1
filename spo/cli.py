from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, NoReturn, Optional

from .batch import StaticPageOptimizer
from .errors import OptimizerError
from .report import analyze_tree, build_report, render_analysis, save_report
from .results import CATEGORIES
from .settings import (
    CATEGORY_KEYS,
    DEFAULT_CONFIG_NAME,
    build_request,
    category_enabled,
    deep_merge,
    load_config_file,
    save_default_config,
    validate,
)
from .stats import render_summary


APP_VERSION = "1.0.0"


class _Parser(argparse.ArgumentParser):
    # Usage errors exit with 1 like every other failure.
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="spo",
        description="Static Page Optimizer: minify HTML, CSS, JS and images into a mirrored tree",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    sub = p.add_subparsers(dest="command", required=True)

    opt = sub.add_parser("optimize", help="Optimize a directory of static assets")

    # Paths. None means "not given", so config-file values survive.
    opt.add_argument("-i", "--input", default=None, help="Input directory (default: ./)")
    opt.add_argument("-o", "--output", default=None, help="Output directory (default: ./dist)")
    opt.add_argument("--config", default=None, help="JSON config file")

    # Categories
    opt.add_argument("--no-html", dest="html", action="store_false", default=None, help="Skip HTML")
    opt.add_argument("--no-css", dest="css", action="store_false", default=None, help="Skip CSS")
    opt.add_argument("--no-js", dest="js", action="store_false", default=None, help="Skip JavaScript")
    opt.add_argument("--no-images", dest="images", action="store_false", default=None, help="Skip images")

    # Behaviour
    opt.add_argument("--backup", action="store_const", const=True, default=None,
                     help="Copy the input tree to <output>/backup first")
    opt.add_argument("--webp", action="store_const", const=True, default=None,
                     help="Also write a .webp copy of JPEG/PNG/GIF images")
    opt.add_argument("--incremental", action="store_const", const=True, default=None,
                     help="Skip files whose output is newer than the input")
    opt.add_argument("-v", "--verbose", action="store_const", const=True, default=None,
                     help="Log every file")
    opt.add_argument("--dry-run", action="store_true", help="Print the resolved configuration and exit")
    opt.add_argument("--report", default=None, help="Write a per-file report (.json or .csv)")
    opt.set_defaults(func=cmd_optimize)

    init = sub.add_parser("init", help="Write a default config file")
    init.add_argument("-o", "--output", default=DEFAULT_CONFIG_NAME,
                      help=f"Config file path (default: {DEFAULT_CONFIG_NAME})")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    init.set_defaults(func=cmd_init)

    ana = sub.add_parser("analyze", help="Count and size assets without changing anything")
    ana.add_argument("-i", "--input", default="./", help="Input directory (default: ./)")
    ana.add_argument("-v", "--verbose", action="store_true", help="List every file")
    ana.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    ana.set_defaults(func=cmd_analyze)

    return p


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("spo").setLevel(logging.INFO if verbose else logging.WARNING)


def _flag_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    if args.input is not None:
        overrides["inputDir"] = args.input
    if args.output is not None:
        overrides["outputDir"] = args.output

    for key in CATEGORY_KEYS.values():
        value = getattr(args, key)
        if value is not None:
            overrides[key] = {"enabled": bool(value)}

    if args.webp:
        overrides.setdefault("images", {})["generateWebP"] = True
    if args.backup:
        overrides["backup"] = True
    if args.incremental:
        overrides["incremental"] = True
    if args.verbose:
        overrides["verbose"] = True

    return overrides


def resolve_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Defaults, then the config file, then explicit flags."""
    file_options: Dict[str, Any] = {}
    if args.config:
        file_options = load_config_file(Path(args.config))
        print("Loaded config:", Path(args.config).resolve())
    return deep_merge(validate(file_options), _flag_overrides(args))


def _print_options(options: Mapping[str, Any]) -> None:
    def onoff(flag: bool) -> str:
        return "on" if flag else "off"

    print("=== Configuration ===")
    print("Input      :", options["inputDir"])
    print("Output     :", options["outputDir"])
    for category in CATEGORIES:
        print(f"{category:<11}:", onoff(category_enabled(options, category)))
    print("Backup     :", onoff(bool(options.get("backup"))))


def cmd_optimize(args: argparse.Namespace) -> int:
    options = resolve_options(args)
    _configure_logging(bool(options.get("verbose")))
    _print_options(options)

    if args.dry_run:
        print("\nDry run: nothing will be written. Resolved configuration:")
        print(json.dumps(options, indent=2, ensure_ascii=False))
        return 0

    optimizer = StaticPageOptimizer(build_request(options))
    stats = optimizer.optimize()

    print()
    for category, count in optimizer.category_counts.items():
        print(f"{category:<11}: {count} files")
    print()
    print(render_summary(stats))

    if args.report:
        report_path = Path(args.report)
        save_report(build_report(optimizer.results, stats), report_path)
        print("\nReport written:", report_path)

    return 0


def cmd_init(args: argparse.Namespace) -> int:
    path = save_default_config(Path(args.output), overwrite=bool(args.force))
    print("Config written:", path)
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    _configure_logging(bool(args.verbose))
    analysis = analyze_tree(Path(args.input))

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_analysis(analysis, verbose=bool(args.verbose)))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except (OptimizerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
