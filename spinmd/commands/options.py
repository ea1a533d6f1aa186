"""Helpers shared by the CLI handlers."""

import logging
import os
import sys

import httpx

from spinmd.client import Client
from spinmd.delivery.processor import DeliveryConfigProcessor, ProcessorConfig
from spinmd.errors import SpinmdError

logger = logging.getLogger(__name__)

# Failures a handler reports and exits on.
CLI_ERRORS = (SpinmdError, httpx.HTTPError, OSError, RuntimeError, ValueError)


def config_path(args) -> str:
    return os.path.join(args.dir, args.file)


def require_config_file(args):
    """Exit with an error if the delivery config file does not exist."""
    path = config_path(args)
    if not os.path.isfile(path):
        logger.error(f"Error: delivery config {path} not found")
        sys.exit(1)


def make_processor(args, app_name="", service_account="") -> DeliveryConfigProcessor:
    return DeliveryConfigProcessor(
        ProcessorConfig(
            directory=args.dir,
            file_name=args.file,
            app_name=app_name,
            service_account=service_account,
        )
    )


def make_client(args) -> Client:
    return Client(base_url=args.baseurl)


def fail(message, error):
    logger.error(f"{message}: {error}")
    sys.exit(1)
