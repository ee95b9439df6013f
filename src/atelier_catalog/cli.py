"""
Command-line interface for the Atelier catalog.
"""

import sys

from dotenv import load_dotenv

from atelier_catalog.cli_app.registry import build_parser, dispatch
from atelier_catalog.settings import get_settings
from atelier_catalog.utils.logging_config import initialize_logging


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    initialize_logging(log_to_file=settings.debug, level=settings.logging_level)
    return dispatch(args)


if __name__ == "__main__":
    sys.exit(main())
