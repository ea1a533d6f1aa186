"""Publish, validate and delete commands for the delivery config."""

import asyncio
import logging
import sys

from spinmd.commands.options import (
    CLI_ERRORS,
    config_path,
    fail,
    make_client,
    make_processor,
    require_config_file,
)
from spinmd.errors import PublishRejectedError

logger = logging.getLogger(__name__)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_publish(args):
    """Handle the publish command."""
    asyncio.run(_handle_publish(args))


async def _handle_publish(args):
    require_config_file(args)
    processor = make_processor(args)
    try:
        await processor.publish(make_client(args), force=args.force)
    except PublishRejectedError as e:
        logger.error("Failed to publish delivery config.  Spinnaker responded with:")
        logger.error(e.publish_error.detail)
        sys.exit(1)
    except CLI_ERRORS as e:
        fail("Failed to post delivery config to spinnaker", e)
    logger.info("OK")


def handle_validate(args):
    """Handle the validate command."""
    asyncio.run(_handle_validate(args))


async def _handle_validate(args):
    require_config_file(args)
    path = config_path(args)
    processor = make_processor(args)
    try:
        detail = await processor.validate(make_client(args))
    except CLI_ERRORS as e:
        fail("Failed to validate delivery config", e)

    if detail is None:
        logger.info(f"{path}: OK")
        return
    logger.error(f"{path}: [{detail.error}] {detail.message} at {detail.path_expression}")
    sys.exit(1)


def handle_delete(args):
    """Handle the delete command."""
    asyncio.run(_handle_delete(args))


async def _handle_delete(args):
    require_config_file(args)
    processor = make_processor(args)
    try:
        await processor.delete(make_client(args))
    except CLI_ERRORS as e:
        fail("Failed to delete delivery config", e)
    logger.info("OK")


# ── Registration ───────────────────────────────────────────────────


def register_publish_commands(subparsers):
    """Register the publish, validate and delete subcommands."""
    parser = subparsers.add_parser("publish", help="Publish the delivery config to Spinnaker")
    parser.add_argument("--force", action="store_true", help="Publish even if the config has not changed")
    parser.set_defaults(func=handle_publish)

    parser = subparsers.add_parser("validate", help="Validate the delivery config with Spinnaker")
    parser.set_defaults(func=handle_validate)

    parser = subparsers.add_parser(
        "delete",
        help="Stop managing the delivery config and remove its history",
    )
    parser.set_defaults(func=handle_delete)
