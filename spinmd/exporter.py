"""Export deployed resources into the local delivery config."""

import functools
import logging
from dataclasses import dataclass, field

import httpx

from spinmd.client import Client
from spinmd.delivery.processor import DeliveryConfigProcessor
from spinmd.delivery.types import (
    CLUSTER_RESOURCE_TYPE,
    NETWORK_LOAD_BALANCER_RESOURCE_TYPE,
    DeliveryArtifact,
    ResourceIdentity,
)
from spinmd.discovery.resources import (
    export_artifact,
    export_resource,
    exportable_application_resources,
    find_application_resources,
)
from spinmd.errors import SpinmdError

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (SpinmdError, httpx.HTTPError)


@dataclass
class ExportResult:
    """Outcome of an export run.

    ``modified`` maps each exported resource to True if it was added to the
    delivery config, False if an existing entry was updated.
    """

    modified: dict[ResourceIdentity, bool] = field(default_factory=dict)
    added_artifacts: list[DeliveryArtifact] = field(default_factory=list)
    skipped: list[ResourceIdentity] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def select_resources(processor, exportable, export_all=False, clusters=None):
    """Pick the resources to export, in order.

    With *export_all* every candidate is taken; with *clusters* only the
    named clusters; otherwise only resources not yet in the delivery config.
    Network load balancers that are not already managed cannot be exported.

    Returns:
        (selected, skipped) lists of ResourceIdentity.
    """
    candidates = []
    skipped = []
    for identity in exportable:
        if processor.resource_exists(identity):
            candidates.append((identity, False))
        elif identity.resource_type == NETWORK_LOAD_BALANCER_RESOURCE_TYPE:
            logger.warning(f"WARNING cannot export {identity}")
            skipped.append(identity)
        else:
            candidates.append((identity, True))

    if export_all:
        selected = [identity for identity, _ in candidates]
    elif clusters is not None:
        selected = [
            identity for identity, _ in candidates if identity.resource_type == CLUSTER_RESOURCE_TYPE and identity.name in clusters
        ]
    else:
        selected = [identity for identity, new in candidates if new]
    return selected, skipped


async def run_export(
    client: Client,
    processor: DeliveryConfigProcessor,
    app_name: str,
    service_account: str = "",
    env_name: str = "",
    only_account: str = "",
    clusters=None,
    export_all: bool = False,
    scanner=exportable_application_resources,
    exporter=None,
) -> ExportResult:
    """Discover the application's resources and merge them into the delivery config.

    Each selected resource is exported and upserted into *env_name*, or the
    environment already holding it. Clusters also export their artifact; if
    the artifact's reference had to change, the cluster is rewritten to use
    the new reference. Failures of single resources are collected in the
    result; the delivery config is saved at the end either way.

    Args:
        scanner: turns ApplicationResources into exportable identities.
        exporter: async ``(client, identity) -> bytes``; defaults to the
            resource export API with *service_account*.
    """
    if exporter is None:
        exporter = functools.partial(export_resource, service_account=service_account)

    logger.info(f"Loading spinnaker resources for {app_name}")
    resources = await find_application_resources(client, app_name)

    result = ExportResult()
    exportable = scanner(resources)
    if not exportable:
        logger.info(f'Found no resources to export for Spinnaker app "{app_name}"')
        return result

    if only_account:
        exportable = [identity for identity in exportable if identity.account == only_account]
    exportable = sorted(exportable, key=ResourceIdentity.sort_key)

    processor.load()
    selected, result.skipped = select_resources(processor, exportable, export_all, clusters)

    for identity in selected:
        logger.info(f"Exporting {identity}")
        try:
            content = await exporter(client, identity)
        except REMOTE_ERRORS as e:
            result.errors.append(f"Failed to export resource {identity}: {e}")
            continue

        target_env = env_name or processor.which_environment(identity)
        if not target_env:
            result.errors.append(f"No environment for new resource {identity}, choose one with --env")
            continue

        try:
            result.modified[identity] = processor.upsert_resource(identity, target_env, content)
        except SpinmdError as e:
            result.errors.append(f"Failed to upsert delivery config for resource {identity}: {e}")
            continue

        if identity.resource_type != CLUSTER_RESOURCE_TYPE:
            continue

        logger.info(f"Exporting Artifact for {identity}")
        try:
            artifact = await export_artifact(client, identity)
        except REMOTE_ERRORS as e:
            result.errors.append(f"Failed to export artifact for {identity}: {e}")
            continue

        added, updated_ref = processor.insert_artifact(artifact)
        if added and not any(
            a.equivalent_to(artifact) and a.ref_name == artifact.ref_name for a in result.added_artifacts
        ):
            result.added_artifacts.append(artifact)
        if not updated_ref:
            continue

        logger.warning(f"WARNING updating artifact reference name for {identity} due to collision")
        logger.warning(f"WARNING artifact reference changed to {updated_ref} to prevent collision")
        try:
            content = processor.update_artifact_reference(content, updated_ref)
            re_added = processor.upsert_resource(identity, target_env, content)
        except SpinmdError as e:
            result.errors.append(f"Failed to update artifact reference for {identity}: {e}")
            continue
        result.modified[identity] = result.modified[identity] or re_added

    processor.save()
    return result
