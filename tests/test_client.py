"""Unit tests for the Spinnaker API client and pause/resume calls."""

import httpx
import pytest

from spinmd.client import Client
from spinmd.errors import InvalidContentError, UnexpectedResponseError
from spinmd.managed import pause_management, resume_management

BASE_URL = "https://gate.test.example"


async def test_request_returns_body(fake_api):
    client, requests = fake_api({"GET /applications/myapp/serverGroups": (200, b"[]")})
    assert await client.request("GET", "/applications/myapp/serverGroups") == b"[]"
    assert str(requests[0].url) == f"{BASE_URL}/applications/myapp/serverGroups"
    assert "Content-Type" not in requests[0].headers


async def test_request_non_2xx_raises(fake_api):
    client, _ = fake_api({"GET /missing": (404, b"not here")})
    with pytest.raises(UnexpectedResponseError) as exc_info:
        await client.request("GET", "/missing")
    error = exc_info.value
    assert error.status_code == 404
    assert error.url == f"{BASE_URL}/missing"
    assert error.content == b"not here"
    assert "expected 2xx but got 404" in str(error)


async def test_redirect_status_is_an_error(fake_api):
    client, _ = fake_api({"GET /moved": (302, b"")})
    with pytest.raises(UnexpectedResponseError):
        await client.request("GET", "/moved")


async def test_get_json_invalid_body(fake_api):
    client, _ = fake_api({"GET /applications": (200, b"not json")})
    with pytest.raises(InvalidContentError) as exc_info:
        await client.get_json("/applications")
    assert exc_info.value.source == f"{BASE_URL}/applications"


async def test_extra_headers_are_sent():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=b"{}")

    client = Client(base_url=BASE_URL, transport=httpx.MockTransport(handler), headers={"X-Spinnaker-User": "me"})
    assert await client.get_json("/credentials") == {}
    assert seen[0].headers["X-Spinnaker-User"] == "me"


async def test_missing_base_url():
    client = Client()
    assert client.base_url == ""
    with pytest.raises(RuntimeError, match="SPINNAKER_API_BASE_URL"):
        await client.request("GET", "/applications")


def test_base_url_from_environment(monkeypatch):
    monkeypatch.setenv("SPINNAKER_API_BASE_URL", "https://env.example")
    assert Client().base_url == "https://env.example"
    assert Client(base_url="https://explicit.example").base_url == "https://explicit.example"


def test_unexpected_response_parse():
    error = UnexpectedResponseError(400, f"{BASE_URL}/x", b'{"message": "bad"}')
    assert error.parse() == {"message": "bad"}
    with pytest.raises(InvalidContentError):
        UnexpectedResponseError(400, f"{BASE_URL}/x", b"<html>").parse()


# ── Pause / resume ───────────────────────────────────────────────


async def test_pause_and_resume(fake_api):
    client, requests = fake_api(
        {
            "POST /managed/application/myapp/pause": (200, b""),
            "DELETE /managed/application/myapp/pause": (204, b""),
        }
    )
    await pause_management(client, "myapp")
    await resume_management(client, "myapp")
    assert [(r.method, r.url.path) for r in requests] == [
        ("POST", "/managed/application/myapp/pause"),
        ("DELETE", "/managed/application/myapp/pause"),
    ]


async def test_pause_failure(fake_api):
    client, _ = fake_api({})
    with pytest.raises(UnexpectedResponseError):
        await pause_management(client, "myapp")
