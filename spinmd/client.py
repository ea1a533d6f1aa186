"""Spinnaker REST API client."""

import json
import logging

import httpx

from spinmd.config import BASE_URL_ENV_VAR, resolve_base_url
from spinmd.errors import InvalidContentError, UnexpectedResponseError

logger = logging.getLogger(__name__)

YAML_CONTENT_TYPE = "application/x-yaml"


class Client:
    """Holds connection details for the Spinnaker REST API.

    Args:
        base_url: API base URL. Defaults to $SPINNAKER_API_BASE_URL or the
            gate endpoint of the spin config.
        transport: optional httpx transport; authentication, retries and
            test doubles plug in here.
        headers: extra headers sent with every request.
    """

    def __init__(self, base_url=None, transport=None, headers=None):
        self.base_url = resolve_base_url(base_url)
        self.transport = transport
        self.headers = dict(headers or {})

    async def request(self, method, path, content=None, content_type=None) -> bytes:
        """Send a request and return the raw response body.

        Raises:
            UnexpectedResponseError: for any non-2xx status.
        """
        if not self.base_url:
            raise RuntimeError(f"{BASE_URL_ENV_VAR} environment variable not set")
        url = f"{self.base_url}{path}"

        headers = {"Accept": "application/json", **self.headers}
        if content_type:
            headers["Content-Type"] = content_type

        logger.debug(f"{method} {url}")
        # No client-side timeout; the transport owns retry and deadline policy.
        async with httpx.AsyncClient(transport=self.transport, timeout=None) as client:
            resp = await client.request(method, url, content=content, headers=headers)
        logger.debug(f"{method} {url} -> {resp.status_code}")

        if not 200 <= resp.status_code < 300:
            raise UnexpectedResponseError(resp.status_code, url, resp.content)
        return resp.content

    async def get_json(self, path):
        """GET a path and decode the JSON body."""
        content = await self.request("GET", path)
        try:
            return json.loads(content)
        except ValueError as e:
            raise InvalidContentError(content, e, source=f"{self.base_url}{path}") from e
