"""Delivery config processor: load, merge, save and remote operations.

The document is held twice: a ruamel.yaml round-trip tree that is written
back to disk, and a typed DeliveryConfig used for lookups. Every mutation
updates both views, so environment and resource indexes stay aligned.
"""

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import quote

from ruamel.yaml.comments import CommentedMap

from spinmd.client import YAML_CONTENT_TYPE, Client
from spinmd.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE, DEFAULT_ENVIRONMENT_CONSTRAINT, DEFAULT_ENVIRONMENTS
from spinmd.delivery.diff import ManagedResourceDiff, parse_diff_response
from spinmd.delivery.keysort import sort_config_keys
from spinmd.delivery.nodes import (
    attach_comments_to_keys,
    check_structure,
    dump_document,
    ensure_sequence,
    load_data,
    load_document,
    load_node,
    set_line_comment,
    to_node,
)
from spinmd.delivery.responses import PublishError, ValidationErrorDetail
from spinmd.delivery.types import (
    DeliveryArtifact,
    DeliveryConfig,
    DeliveryEnvironment,
    DeliveryResource,
    Locations,
    ResourceIdentity,
)
from spinmd.errors import (
    InvalidContentError,
    MalformedResourceError,
    PublishRejectedError,
    UnexpectedResponseError,
    UnsupportedResourceKindError,
)

logger = logging.getLogger(__name__)

# (env_name, current config) -> list of entries for that environment key
EnvironmentProvider = Callable[[str, DeliveryConfig], list]

# Where each cluster kind keeps its artifact reference.
ARTIFACT_REFERENCE_PATHS = [
    (lambda kind: kind.startswith("titus/cluster@v1"), ("spec", "container", "reference")),
    (lambda kind: kind == "ec2/cluster@v1", ("spec", "imageProvider", "reference")),
    (lambda kind: kind == "ec2/cluster@v1.1", ("spec", "artifactReference")),
]


def default_constraints(env_name: str, current: DeliveryConfig) -> list:
    return [dict(DEFAULT_ENVIRONMENT_CONSTRAINT)]


def no_entries(env_name: str, current: DeliveryConfig) -> list:
    return []


@dataclass
class ProcessorConfig:
    """Settings for a DeliveryConfigProcessor.

    Args:
        directory: directory holding the delivery config file.
        file_name: delivery config file name.
        app_name: application used for ``application``/``name`` defaults on save.
        service_account: default ``serviceAccount`` written on save.
        constraints_provider: constraints for new environments, or existing
            ones that lack them.
        notifications_provider: notifications, filled in like constraints.
        verify_with_provider: ``verifyWith`` entries, refreshed on every upsert.
        post_deploy_provider: ``postDeploy`` entries, refreshed on every upsert.
    """

    directory: str = DEFAULT_CONFIG_DIR
    file_name: str = DEFAULT_CONFIG_FILE
    app_name: str = ""
    service_account: str = ""
    constraints_provider: EnvironmentProvider = default_constraints
    notifications_provider: EnvironmentProvider = no_entries
    verify_with_provider: EnvironmentProvider = no_entries
    post_deploy_provider: EnvironmentProvider = no_entries


class DeliveryConfigProcessor:
    """Loads, edits and saves one delivery config file.

    Not safe for concurrent use; a processor is owned by a single caller.
    """

    def __init__(self, config: ProcessorConfig | None = None):
        self.config = config or ProcessorConfig()
        self.raw: CommentedMap | None = None
        self.delivery_config = DeliveryConfig()
        self.content = b""
        self._dirty = False
        self._last_stamp = 0

    @property
    def path(self) -> str:
        return os.path.join(self.config.directory, self.config.file_name)

    # ── Load / save ────────────────────────────────────────────────

    def load(self):
        """Read the delivery config from disk, resetting all in-memory state.

        A missing file yields an empty document.

        Raises:
            InvalidContentError: if the file is not a YAML mapping, its
                environments, resources or artifacts are not sequences, or a
                typed field such as a moniker sequence does not parse.
        """
        self.raw = None
        self.delivery_config = DeliveryConfig()
        self.content = b""
        self._dirty = False

        path = self.path
        try:
            with open(path, "rb") as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug(f"{path} does not exist, starting from an empty delivery config")
            self.raw = CommentedMap()
            return

        try:
            raw = load_document(content)
            data = load_data(content)
        except InvalidContentError as e:
            raise InvalidContentError(content, e.parse_error, source=path) from e
        try:
            check_structure(raw)
            delivery_config = DeliveryConfig.from_dict(data)
        except (ValueError, TypeError) as e:
            raise InvalidContentError(content, e, source=path) from e

        attach_comments_to_keys(raw)
        self.raw = raw
        self.delivery_config = delivery_config
        self.content = content

    def save(self):
        """Apply defaults and kind-line comments, sort keys and write the file."""
        self._ensure_loaded()
        logger.debug("Saving")
        self._apply_defaults()
        self._annotate_resources()
        sort_config_keys(self.raw)
        output = dump_document(self.raw)

        os.makedirs(self.config.directory or ".", exist_ok=True)
        path = self.path
        logger.debug(f"Writing to {path}")
        with open(path, "wb") as f:
            f.write(output)

        self.content = output
        self._dirty = False

    def _apply_defaults(self):
        raw = self.raw
        current = self.delivery_config
        app = self.config.app_name
        if app and "application" not in raw:
            raw["application"] = app
            current.application = app
        if app and "name" not in raw:
            raw["name"] = f"{app}-manifest"
            current.name = raw["name"]
        if self.config.service_account and "serviceAccount" not in raw:
            raw["serviceAccount"] = self.config.service_account
            current.service_account = self.config.service_account
        # The API requires the artifacts list even when it is empty.
        ensure_sequence(raw, "artifacts")

    def _annotate_resources(self):
        """Comment each resource's kind line with ``<name>/<account>``."""
        env_nodes = self.raw.get("environments")
        if not isinstance(env_nodes, list):
            return
        for env_node, env in zip(env_nodes, self.delivery_config.environments):
            resource_nodes = env_node.get("resources") if isinstance(env_node, CommentedMap) else None
            if not isinstance(resource_nodes, list):
                continue
            for resource_node, resource in zip(resource_nodes, env.resources):
                if not isinstance(resource_node, CommentedMap) or "kind" not in resource_node:
                    continue
                account = resource.account or env.locations.account
                set_line_comment(resource_node, "kind", f"{resource.name}/{account}")

    def _ensure_loaded(self):
        if self.raw is None:
            self.load()

    def _payload(self) -> bytes:
        """YAML sent to the API: the file as read, or the tree once it has been modified.

        A missing or empty file sends the rendered empty document.
        """
        self._ensure_loaded()
        if self._dirty or not self.content:
            return dump_document(self.raw)
        return self.content

    # ── Lookups ────────────────────────────────────────────────────

    def all_environments(self) -> list[str]:
        """Environment names in the document, then the default names not already present."""
        names = [env.name for env in self.delivery_config.environments]
        names.extend(name for name in DEFAULT_ENVIRONMENTS if name not in names)
        return names

    def _find_env_index(self, env_name: str) -> int:
        for ix, env in enumerate(self.delivery_config.environments):
            if env.name == env_name:
                return ix
        return -1

    def _find_resource_index(self, identity: ResourceIdentity, env_index: int) -> int:
        environments = self.delivery_config.environments
        if not 0 <= env_index < len(environments):
            return -1
        env = environments[env_index]
        for ix, resource in enumerate(env.resources):
            # Resources without locations inherit the environment's.
            if resource.spec.locations.empty:
                resource.spec.locations = Locations(env.locations.account, list(env.locations.regions))
            if resource.match(identity):
                return ix
        return -1

    def which_environment(self, identity: ResourceIdentity) -> str:
        """Name of the environment holding the resource, or "" if it is not in the document."""
        for ix, env in enumerate(self.delivery_config.environments):
            if self._find_resource_index(identity, ix) >= 0:
                return env.name
        return ""

    def resource_exists(self, identity: ResourceIdentity) -> bool:
        return self.which_environment(identity) != ""

    # ── Mutations ──────────────────────────────────────────────────

    def upsert_resource(self, identity: ResourceIdentity, env_name: str, content: bytes) -> bool:
        """Replace the resource matching *identity* in *env_name*, or append it.

        An unknown environment is created with the provider defaults.
        Existing environments get constraints and notifications back-filled
        when missing, and verifyWith/postDeploy always refreshed.

        Returns:
            True if the resource (or its environment) was added, False if an
            existing resource was replaced.

        Raises:
            InvalidContentError: if *content* is not a YAML mapping or a typed
                field does not parse.
        """
        self._ensure_loaded()
        node = load_node(content)
        if not isinstance(node, CommentedMap):
            raise InvalidContentError(content, ValueError("resource is not a YAML mapping"))
        try:
            resource = DeliveryResource.from_dict(load_data(content))
        except (ValueError, TypeError) as e:
            raise InvalidContentError(content, e) from e

        cfg = self.config
        current = self.delivery_config
        env_index = self._find_env_index(env_name)
        self._dirty = True

        if env_index < 0:
            env = DeliveryEnvironment(
                name=env_name,
                constraints=cfg.constraints_provider(env_name, current),
                notifications=cfg.notifications_provider(env_name, current),
                verify_with=cfg.verify_with_provider(env_name, current),
                post_deploy=cfg.post_deploy_provider(env_name, current),
                resources=[resource],
            )
            env_node = to_node(
                {
                    "name": env_name,
                    "constraints": env.constraints,
                    "notifications": env.notifications,
                    "resources": [],
                    "verifyWith": env.verify_with,
                    "postDeploy": env.post_deploy,
                }
            )
            env_node["resources"].append(node)
            ensure_sequence(self.raw, "environments").append(env_node)
            current.environments.append(env)
            logger.debug(f"Added {identity} to new environment {env_name}")
            return True

        env = current.environments[env_index]
        env_node = self.raw["environments"][env_index]

        if env_node.get("constraints") is None:
            env.constraints = cfg.constraints_provider(env_name, current)
            env_node["constraints"] = to_node(env.constraints)
        if env_node.get("notifications") is None:
            env.notifications = cfg.notifications_provider(env_name, current)
            env_node["notifications"] = to_node(env.notifications)

        resource_nodes = ensure_sequence(env_node, "resources")
        resource_index = self._find_resource_index(identity, env_index)
        if resource_index < 0:
            env.resources.append(resource)
            resource_nodes.append(node)
            added = True
        else:
            env.resources[resource_index] = resource
            resource_nodes[resource_index] = node
            added = False

        env.verify_with = cfg.verify_with_provider(env_name, current)
        env_node["verifyWith"] = to_node(env.verify_with)
        env.post_deploy = cfg.post_deploy_provider(env_name, current)
        env_node["postDeploy"] = to_node(env.post_deploy)

        logger.debug(f"{'Added' if added else 'Updated'} {identity} in environment {env_name}")
        return added

    def insert_artifact(self, artifact: DeliveryArtifact) -> tuple[bool, str]:
        """Add *artifact* unless an equivalent one is already declared.

        Artifacts are equivalent when their build metadata matches; the ref
        name is only an alias. Outcomes:

        - equivalent, same ref name: ``(False, "")``.
        - equivalent, different ref name: *artifact* becomes an alias of the
          existing one, ``(False, existing_ref)``.
        - ref name taken by a different artifact: appended under a unique
          ``<ref>-<suffix>`` reference, ``(True, new_ref)``.
        - otherwise appended, ``(True, "")``.

        A non-empty second element is the reference that resources declaring
        *artifact* must be rewritten to.
        """
        self._ensure_loaded()
        collision = False
        for existing in self.delivery_config.artifacts:
            if existing.equivalent_to(artifact):
                if existing.ref_name == artifact.ref_name:
                    return False, ""
                artifact.reference = existing.ref_name
                return False, artifact.reference
            if existing.ref_name == artifact.ref_name:
                collision = True

        updated_ref = ""
        if collision:
            updated_ref = self._unique_ref(artifact.ref_name)
            artifact.reference = updated_ref

        self.delivery_config.artifacts.append(artifact)
        ensure_sequence(self.raw, "artifacts").append(to_node(artifact.to_dict()))
        self._dirty = True
        logger.debug(f"Added artifact {artifact.ref_name}")
        return True, updated_ref

    def _unique_ref(self, ref: str) -> str:
        """``<ref>-<stamp>`` with a nanosecond stamp that never repeats within this processor."""
        taken = {a.ref_name for a in self.delivery_config.artifacts}
        while True:
            self._last_stamp = max(time.time_ns(), self._last_stamp + 1)
            candidate = f"{ref}-{self._last_stamp}"
            if candidate not in taken:
                return candidate

    def update_artifact_reference(self, content: bytes, new_ref: str) -> bytes:
        """Point a serialized cluster resource at *new_ref*.

        Content without a ``kind`` is returned re-serialized, unchanged.

        Raises:
            InvalidContentError: if *content* is not a YAML mapping.
            UnsupportedResourceKindError: for kinds with no known reference field.
            MalformedResourceError: if the nested mapping holding the reference is missing.
        """
        node = load_node(content)
        if not isinstance(node, CommentedMap):
            raise InvalidContentError(content, ValueError("resource is not a YAML mapping"))

        kind = node.get("kind")
        if isinstance(kind, str):
            path = next((p for matches, p in ARTIFACT_REFERENCE_PATHS if matches(kind)), None)
            if path is None:
                raise UnsupportedResourceKindError(kind)
            parent = node
            for depth, key in enumerate(path[:-1], start=1):
                parent = parent.get(key)
                if not isinstance(parent, dict):
                    raise MalformedResourceError(kind, ".".join(path[:depth]))
            parent[path[-1]] = new_ref
        return dump_document(node)

    # ── Remote operations ──────────────────────────────────────────

    async def publish(self, client: Client, force: bool = False):
        """Submit the delivery config so the API manages the application.

        Raises:
            PublishRejectedError: the API rejected the config with an error document.
            UnexpectedResponseError: any other non-2xx response.
        """
        payload = self._payload()
        try:
            await client.request(
                "POST",
                f"/managed/delivery-configs?force={str(force).lower()}",
                content=payload,
                content_type=YAML_CONTENT_TYPE,
            )
        except UnexpectedResponseError as e:
            publish_error = _parse_publish_error(e)
            if publish_error is None:
                raise
            raise PublishRejectedError(e.status_code, e.url, e.content, publish_error) from e

    async def diff(self, client: Client) -> list[ManagedResourceDiff]:
        """Compare the delivery config with the deployed state, ordered by resource ID."""
        content = await client.request(
            "POST",
            "/managed/delivery-configs/diff",
            content=self._payload(),
            content_type=YAML_CONTENT_TYPE,
        )
        return parse_diff_response(content)

    async def validate(self, client: Client) -> ValidationErrorDetail | None:
        """Validate the delivery config; a rejected config returns its validation detail.

        Raises:
            UnexpectedResponseError: for failures other than HTTP 400.
            InvalidContentError: if a 400 response does not carry a JSON error document.
        """
        try:
            await client.request(
                "POST",
                "/managed/delivery-configs/validate",
                content=self._payload(),
                content_type=YAML_CONTENT_TYPE,
            )
        except UnexpectedResponseError as e:
            if e.status_code != 400:
                raise
            try:
                return ValidationErrorDetail.from_dict(e.parse())
            except ValueError as parse_error:
                raise InvalidContentError(e.content, parse_error, source=e.url) from e
        return None

    async def delete(self, client: Client):
        """Stop managing the delivery config; the API drops all its history."""
        self._ensure_loaded()
        name = self.delivery_config.name
        if not name:
            raise ValueError(f"{self.path} has no delivery config name")
        await client.request("DELETE", f"/managed/delivery-configs/{quote(name, safe='')}")


def _parse_publish_error(e: UnexpectedResponseError) -> PublishError | None:
    try:
        return PublishError.from_dict(e.parse())
    except (InvalidContentError, ValueError):
        return None
