"""Shared pytest fixtures for all test modules."""

import json
import os
import subprocess
import sys

import httpx
import pytest

from spinmd.client import Client

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))
BASE_URL = "https://gate.test.example"

# Already in saved form: keys sorted, kind lines commented, 2-space indent.
SAMPLE_CONFIG = """\
# Managed delivery config for myapp
name: myapp-manifest
application: myapp
artifacts:
  - name: myapp
    type: deb
    reference: myapp-deb
    vmOptions:
      baseLabel: RELEASE
      baseOs: bionic
      regions:
        - us-east-1
      storeType: EBS
environments:
  - name: testing
    locations:
      account: test
      regions:
        - name: us-east-1
    constraints: []
    notifications: []
    resources:
      - kind: ec2/cluster@v1 # myapp-test/test
        spec:
          moniker:
            app: myapp
            stack: test
          capacity:
            max: 3
            min: 1
          imageProvider:
            reference: myapp-deb
serviceAccount: delivery@example.com
"""


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the spinmd CLI as a subprocess."""

    def _run(*args, env=None):
        result = subprocess.run(
            [sys.executable, "-m", "spinmd.spinmd", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env={**os.environ, **(env or {})},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(autouse=True)
def isolated_spin_config(tmp_path, monkeypatch):
    """Keep the user's ~/.spin/config and SPINNAKER_API_BASE_URL out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("SPINNAKER_API_BASE_URL", raising=False)
    return home


# ── Unit-test fixtures ──────────────────────────────────────────────


@pytest.fixture
def sample_config():
    """The sample spinnaker.yml text, already in saved form."""
    return SAMPLE_CONFIG


@pytest.fixture
def config_dir(tmp_path):
    """Create a temp directory with the sample spinnaker.yml."""
    directory = tmp_path / "project"
    directory.mkdir()
    (directory / "spinnaker.yml").write_text(SAMPLE_CONFIG)
    return directory


@pytest.fixture
def fake_api():
    """Return a factory for a Client backed by canned responses.

    Routes map ``"METHOD /path?query"`` (or ``"METHOD /path"``) to
    ``(status, body)``; dict and list bodies are sent as JSON. Unknown
    routes answer 404. The factory returns ``(client, requests)`` where
    ``requests`` collects every request sent.
    """

    def _make(routes):
        requests = []

        def handler(request):
            requests.append(request)
            key = f"{request.method} {request.url.raw_path.decode()}"
            if key not in routes:
                key = f"{request.method} {request.url.path}"
            status, body = routes.get(key, (404, b"not found"))
            if isinstance(body, (dict, list)):
                body = json.dumps(body).encode()
            elif isinstance(body, str):
                body = body.encode()
            return httpx.Response(status, content=body)

        client = Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        return client, requests

    return _make
