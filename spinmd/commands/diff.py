"""Diff command: compare the delivery config with what is deployed."""

import asyncio
import logging
import sys

from spinmd.commands.options import CLI_ERRORS, fail, make_client, make_processor, require_config_file

logger = logging.getLogger(__name__)


def print_diffs(diffs, brief=False, quiet=False) -> int:
    """Log each resource's diff status and changed fields.

    Returns:
        1 if any resource differs from the deployed state, else 0.
    """
    exit_code = 0
    for diff in diffs:
        status = diff.status
        if diff.has_diff:
            exit_code = 1
        else:
            status = "SAME"
        if quiet:
            continue
        logger.info(f"=> {status} {diff.resource_id}")
        if brief:
            continue
        for name in sorted(diff.diffs):
            field = diff.diffs[name]
            if not field.current:
                continue
            logger.info(name)
            logger.info("--- current")
            logger.info("+++ desired")
            logger.info(f"- {field.current}")
            logger.info(f"+ {field.desired}")
    return exit_code


def handle_diff(args):
    """Handle the diff command."""
    asyncio.run(_handle_diff(args))


async def _handle_diff(args):
    require_config_file(args)
    processor = make_processor(args)
    try:
        diffs = await processor.diff(make_client(args))
    except CLI_ERRORS as e:
        fail("Failed to diff delivery config with spinnaker", e)

    exit_code = print_diffs(diffs, brief=args.brief, quiet=args.quiet)
    if exit_code:
        sys.exit(exit_code)


def register_diff_command(subparsers):
    """Register the diff subcommand."""
    parser = subparsers.add_parser(
        "diff",
        help="Show differences between the delivery config and the deployed state",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress output, exit code indicates differences")
    parser.add_argument("--brief", action="store_true", help="Only print resource status, not the differences")
    parser.set_defaults(func=handle_diff)
