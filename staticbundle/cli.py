"""Command line entry point.

    staticbundle embed ./web/dist -o myapp/assets.py
    staticbundle embed ./web/dist -o assets.sqlite --format sqlite
    staticbundle embed ./web/dist -o myapp/assets.py --set-size 200
    staticbundle npm ./web --install --run build --target ./web/dist --change-detection -o myapp/assets.py
    staticbundle serve --bundle assets.sqlite --fallback --port 8000
"""

import argparse
import logging
import sys
from typing import List, Optional

from staticbundle.build.codegen import SplitByCount, load_module, write_module, write_module_sets
from staticbundle.build.npm import NpmBuild
from staticbundle.build.walker import build_registry
from staticbundle.config import settings
from staticbundle.database import load_bundle, write_bundle
from staticbundle.errors import StaticBundleError
from staticbundle.registry import ResourceRegistry

logger = logging.getLogger("staticbundle")


def _write_output(registry: ResourceRegistry, args: argparse.Namespace) -> None:
    if args.format == "sqlite":
        write_bundle(registry, args.output or "resources.sqlite")
    elif args.set_size is not None:
        write_module_sets(
            registry, args.output or settings.GENERATED_FILENAME, args.fn, SplitByCount(args.set_size)
        )
    else:
        write_module(registry, args.output or settings.GENERATED_FILENAME, args.fn)


def cmd_embed(args: argparse.Namespace) -> None:
    registry = build_registry(args.source)
    _write_output(registry, args)


def cmd_npm(args: argparse.Namespace) -> None:
    build = NpmBuild(args.source, args.executable)
    if args.install:
        build.install()
    for script in args.run:
        build.run(script)
    if args.target:
        build.target(args.target)
    if args.change_detection:
        build.change_detection()
    if args.timeout is not None:
        build.timeout(args.timeout)
    if args.node_options:
        build.node_options(args.node_options)
    _write_output(build.build_registry(), args)


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    from staticbundle.main import create_app

    registry = None
    if args.bundle:
        registry = load_bundle(args.bundle)
    elif args.module:
        registry = load_module(args.module, args.fn)

    app = create_app(registry, mount_path=args.mount, fallback_to_root=args.fallback or None)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output", default=None, help="Output file (generated module or SQLite bundle)")
    parser.add_argument("--format", choices=("module", "sqlite"), default="module", help="Artifact format")
    parser.add_argument("--fn", default=settings.GENERATED_FN, help="Function name in the generated module")
    parser.add_argument("--set-size", type=int, default=None, help="Split the generated module into sets of N files")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="staticbundle", description="Embed and serve static assets")
    sub = parser.add_subparsers(dest="command", required=True)

    embed = sub.add_parser("embed", help="Embed a directory")
    embed.add_argument("source", help="Directory to embed")
    _add_output_args(embed)
    embed.set_defaults(func=cmd_embed)

    npm = sub.add_parser("npm", help="Run a package-manager build, then embed its output")
    npm.add_argument("source", help="Directory containing package.json")
    npm.add_argument("--executable", default=None, help=f"Package manager (default: {settings.NPM_EXECUTABLE})")
    npm.add_argument("--install", action="store_true", help="Install dependencies first")
    npm.add_argument("--run", action="append", default=[], metavar="SCRIPT", help="Script to run (repeatable)")
    npm.add_argument("--target", default=None, help="Build output directory (default: SOURCE/node_modules)")
    npm.add_argument("--change-detection", action="store_true", help="Skip steps when inputs are unchanged")
    npm.add_argument("--timeout", type=float, default=None, help="Per-step timeout in seconds")
    npm.add_argument("--node-options", default=None, help="NODE_OPTIONS for the build processes")
    _add_output_args(npm)
    npm.set_defaults(func=cmd_npm)

    serve = sub.add_parser("serve", help="Serve a bundle or generated module over HTTP")
    source = serve.add_mutually_exclusive_group()
    source.add_argument("--bundle", default=None, help="SQLite bundle to serve")
    source.add_argument("--module", default=None, help="Generated module to serve")
    serve.add_argument("--fn", default=settings.GENERATED_FN, help="Function name in the generated module")
    serve.add_argument("--mount", default=None, help="Mount prefix (default: STATIC_MOUNT_PATH)")
    serve.add_argument("--fallback", action="store_true", help="Serve index.html for unknown paths")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except StaticBundleError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
