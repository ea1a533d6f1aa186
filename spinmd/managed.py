"""Pause and resume Spinnaker management of an application."""

import logging

from spinmd.client import Client

logger = logging.getLogger(__name__)


def _pause_path(app_name: str) -> str:
    return f"/managed/application/{app_name}/pause"


async def pause_management(client: Client, app_name: str):
    """Stop reconciling the application. Management history is kept."""
    logger.debug(f"Pausing management of {app_name}")
    await client.request("POST", _pause_path(app_name))


async def resume_management(client: Client, app_name: str):
    """Resume reconciling a paused application."""
    logger.debug(f"Resuming management of {app_name}")
    await client.request("DELETE", _pause_path(app_name))
