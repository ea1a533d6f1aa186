"""Format command: rewrite the delivery config with stable key order."""

import logging

from spinmd.commands.options import CLI_ERRORS, config_path, fail, make_processor

logger = logging.getLogger(__name__)


def handle_fmt(args):
    """Handle the fmt command."""
    processor = make_processor(args)
    try:
        processor.load()
        processor.save()
    except CLI_ERRORS as e:
        fail(f"Failed to format {config_path(args)}", e)
    logger.info("OK")


def register_fmt_command(subparsers):
    """Register the fmt subcommand."""
    parser = subparsers.add_parser("fmt", help="Format the delivery config file")
    parser.set_defaults(func=handle_fmt)
