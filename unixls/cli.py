# unixls/cli.py - Command line entry point: `unixls ls` and `unixls serve`

import argparse
import logging
import os
import sys
from typing import List, Optional, TextIO

from .core.context import Context
from .core.errors import UnixlsError
from .core.lister import Lister
from .core.node import UnixfsNode, build_node
from .core.text import encode_text
from .models.ls import LsOptions

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unixls", description="List directory contents for UnixFS objects.")
    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser(
        "ls",
        help="List directory contents",
        description="Displays the contents of the object(s) at the given path(s), "
                    "one '<hash> <size> <name>' line per link. The JSON output contains type information.",
    )
    ls.add_argument("paths", nargs="*", help="Paths to list. Read from stdin, one per line, when omitted.")
    ls.add_argument("-v", "--headers", action="store_true", help="Print table headers (Hash, Size, Name).")
    ls.add_argument("--resolve-type", action=argparse.BooleanOptionalAction, default=True,
                    help="Resolve linked objects to find out their types (default: on).")
    ls.add_argument("-s", "--stream", action="store_true", help="Stream directory entries as they are found.")
    ls.add_argument("--enc", choices=["text", "json"], default="text", help="Output encoding.")
    ls.add_argument("--align", action="store_true", help="Pad columns with spaces instead of tabs.")
    ls.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds.")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=os.getenv("UNIXLS_HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("UNIXLS_PORT", 8000)))
    return parser


def read_paths(stream: TextIO) -> List[str]:
    return [line.strip() for line in stream if line.strip()]


def run_ls(args: argparse.Namespace, node: UnixfsNode, out: TextIO, stdin: TextIO) -> int:
    paths = args.paths or (read_paths(stdin) if not stdin.isatty() else [])
    options = LsOptions(headers=args.headers, resolve_type=args.resolve_type, stream=args.stream)
    ctx = Context(timeout=args.timeout)
    lister = Lister(node, options)
    outputs = lister.run(ctx, paths)
    try:
        for output in outputs:
            if args.enc == "json":
                out.write(output.model_dump_json(by_alias=True) + "\n")
            else:
                encode_text(output, out, headers=options.headers, align=args.align)
            out.flush()
    except UnixlsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        ctx.cancel()
        return 130
    finally:
        outputs.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=os.getenv("UNIXLS_LOG_LEVEL", "WARNING").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    if args.command == "serve":
        import uvicorn
        logger.info(f"Starting Uvicorn server on {args.host}:{args.port}...")
        uvicorn.run("unixls.main:app", host=args.host, port=args.port)
        return 0

    node = build_node()
    try:
        return run_ls(args, node, sys.stdout, sys.stdin)
    finally:
        node.close()


if __name__ == "__main__":
    sys.exit(main())
