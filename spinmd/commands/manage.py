"""Pause and resume commands."""

import asyncio
import logging

from spinmd.commands.options import CLI_ERRORS, fail, make_client, require_config_file
from spinmd.managed import pause_management, resume_management

logger = logging.getLogger(__name__)


def handle_pause(args):
    """Handle the pause command."""
    asyncio.run(_handle_toggle(args, pause=True))


def handle_resume(args):
    """Handle the resume command."""
    asyncio.run(_handle_toggle(args, pause=False))


async def _handle_toggle(args, pause):
    require_config_file(args)
    client = make_client(args)
    try:
        if pause:
            await pause_management(client, args.app)
        else:
            await resume_management(client, args.app)
    except CLI_ERRORS as e:
        fail(f"Failed to {'pause' if pause else 'resume'} management of {args.app}", e)
    logger.info("OK")


def register_manage_commands(subparsers):
    """Register the pause and resume subcommands."""
    parser = subparsers.add_parser("pause", help="Pause Spinnaker management of an application")
    parser.add_argument("--app", required=True, help="Spinnaker application name")
    parser.set_defaults(func=handle_pause)

    parser = subparsers.add_parser("resume", help="Resume Spinnaker management of an application")
    parser.add_argument("--app", required=True, help="Spinnaker application name")
    parser.set_defaults(func=handle_resume)
