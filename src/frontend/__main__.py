from __future__ import annotations
import argparse
import logging
import sys

from stardict import __version__
from stardict.errors import StardictError

from . import Session


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sdview", description="StarDict dictionary viewer")
    p.add_argument("dictionaries", nargs="*", metavar="dictionary.ifo",
                   help="Dictionaries to open (default: the ones in the configuration file)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--gui", action="store_true", help="Launch the GUI even when run from a terminal")
    p.add_argument("--web", action="store_true", help="Serve the viewer over HTTP instead")
    p.add_argument("--host", default="127.0.0.1", help="Address for --web")
    p.add_argument("--port", type=int, default=8000, help="Port for --web")
    p.add_argument("--config", default=None, help="Configuration file listing dictionaries")
    p.add_argument("--verbose", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as exc:
        # --help/--version exit 0; usage errors become 1
        return 0 if not exc.code else 1

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        session = Session.create(args.dictionaries, config=args.config)
    except (StardictError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        if args.gui or (not args.web and not sys.stdin.isatty()):
            from .gui import run
            return run(session)

        session.load()
        if args.web:
            from .web import serve
            serve(session, host=args.host, port=args.port, debug=args.verbose)
            return 0

        from .terminal import TerminalApp
        return TerminalApp(session).run()
    except StardictError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
