"""
udpcli entry point

Runs a single command given on the command line, or an interactive shell
reading commands from stdin.
"""
import argparse
import sys
from typing import Optional, Sequence

import structlog

from udpcli.config import settings
from udpcli.logging import setup_logging
from udpcli.shell import Interpreter

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="udpcli",
        description="Interactive shell for exercising a single UDP socket",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: %(default)s)",
    )
    parser.add_argument(
        "--log-format",
        default=settings.log_format,
        choices=["json", "console"],
        help="Log record rendering (default: %(default)s)",
    )
    parser.add_argument(
        "--no-file-log",
        action="store_true",
        help="Log to stderr only, without the rotating log file",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Run one command and exit, e.g. 'send ::1 1234 hello'",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        "udpcli",
        level=args.log_level,
        file_log=not args.no_file_log,
        log_format=args.log_format,
    )

    interpreter = Interpreter()

    if args.command:
        return 0 if interpreter.run_one_shot(args.command) else 1

    logger.info("udpcli_shell_started")
    try:
        interpreter.run(sys.stdin)
    except KeyboardInterrupt:
        interpreter.output.output_line()
    logger.info("udpcli_shell_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
