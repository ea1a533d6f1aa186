"""Defaults and Spinnaker API endpoint resolution."""

import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "spinnaker.yml"
DEFAULT_CONFIG_DIR = "."
DEFAULT_SPIN_CONFIG = "~/.spin/config"

# Constraint given to environments created while exporting new resources.
DEFAULT_ENVIRONMENT_CONSTRAINT = {"type": "manual-judgement"}

# Environment names always offered, in addition to those in the document.
DEFAULT_ENVIRONMENTS = ("testing", "staging", "production")

BASE_URL_ENV_VAR = "SPINNAKER_API_BASE_URL"


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))


def load_spin_config(config_path: str = DEFAULT_SPIN_CONFIG) -> dict:
    """Load the spin CLI config file.

    Environment variables in the file are expanded before parsing.
    A missing file yields an empty dict.
    """
    path = _expand_path(config_path)
    if not os.path.isfile(path):
        return {}
    with open(path) as f:
        text = os.path.expandvars(f.read())
    try:
        config = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse {path} as YAML: {e}") from e
    return config or {}


def resolve_base_url(base_url=None, spin_config_path: str = DEFAULT_SPIN_CONFIG) -> str:
    """Pick the API base URL: explicit value, then $SPINNAKER_API_BASE_URL,
    then ``gate.endpoint`` from the spin config. Empty string if none is set.
    """
    if base_url:
        return base_url
    env_url = os.environ.get(BASE_URL_ENV_VAR, "")
    if env_url:
        return env_url
    gate = load_spin_config(spin_config_path).get("gate") or {}
    endpoint = gate.get("endpoint", "")
    if endpoint:
        logger.debug(f"Using gate endpoint {endpoint} from {spin_config_path}")
    return endpoint
