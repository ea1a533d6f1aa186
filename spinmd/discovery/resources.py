"""Discover deployed application resources and export them as delivery config YAML."""

import asyncio
import logging
import re
from urllib.parse import quote

import httpx

from spinmd.client import Client
from spinmd.delivery.nodes import load_data
from spinmd.delivery.types import (
    APPLICATION_LOAD_BALANCER_RESOURCE_TYPE,
    AWS_CLOUD_PROVIDER,
    CLUSTER_RESOURCE_TYPE,
    LOAD_BALANCER_RESOURCE_TYPE,
    NETWORK_LOAD_BALANCER_RESOURCE_TYPE,
    SECURITY_GROUP_RESOURCE_TYPE,
    DeliveryArtifact,
    ResourceIdentity,
)
from spinmd.discovery.types import ApplicationResources, LoadBalancer, SecurityGroup, ServerGroup
from spinmd.errors import DiscoveryError, InvalidContentError, SpinmdError

logger = logging.getLogger(__name__)

SECURITY_GROUP_PAGE_SIZE = 500


# ── Live state ────────────────────────────────────────────────────


async def get_server_groups(client: Client, app_name: str) -> list[ServerGroup]:
    data = await client.get_json(f"/applications/{app_name}/serverGroups")
    return [ServerGroup.from_dict(d) for d in data or []]


async def get_load_balancers(client: Client, app_name: str) -> list[LoadBalancer]:
    data = await client.get_json(f"/applications/{app_name}/loadBalancers")
    return [LoadBalancer.from_dict(d) for d in data or []]


async def get_security_groups(client: Client, app_name: str) -> list[SecurityGroup]:
    """Search security groups by application name.

    The search API wraps matches as ``[{"results": [...]}]``.
    """
    data = await client.get_json(f"/search?pageSize={SECURITY_GROUP_PAGE_SIZE}&q={app_name}&type=securityGroup")
    groups = []
    for page in data or []:
        groups.extend(SecurityGroup.from_dict(d) for d in page.get("results") or [])
    return groups


async def find_application_resources(client: Client, app_name: str) -> ApplicationResources:
    """Load server groups, load balancers and security groups concurrently.

    If any read fails, nothing is returned and the first error is raised as
    a DiscoveryError.
    """
    logger.debug(f"Loading resources for {app_name}")
    try:
        server_groups, load_balancers, security_groups = await asyncio.gather(
            get_server_groups(client, app_name),
            get_load_balancers(client, app_name),
            get_security_groups(client, app_name),
        )
    except (SpinmdError, httpx.HTTPError) as e:
        raise DiscoveryError(app_name, e) from e
    return ApplicationResources(
        app_name=app_name,
        server_groups=server_groups,
        load_balancers=load_balancers,
        security_groups=security_groups,
    )


# ── Exportable resources ──────────────────────────────────────────


def match_app_name(app_name: str, resource_name: str) -> bool:
    """True for ``app`` or ``app-anything``, but not ``app2``."""
    return re.fullmatch(rf"{re.escape(app_name)}(-.*)?", resource_name) is not None


def _load_balancer_type(lb: LoadBalancer) -> str:
    if not lb.target_groups:
        return LOAD_BALANCER_RESOURCE_TYPE
    if lb.load_balancer_type == "network":
        return NETWORK_LOAD_BALANCER_RESOURCE_TYPE
    return APPLICATION_LOAD_BALANCER_RESOURCE_TYPE


def exportable_application_resources(resources: ApplicationResources) -> list[ResourceIdentity]:
    """Deduplicated identities of the resources that can be exported.

    Every cluster is exportable; load balancers and security groups only
    when their name looks like it belongs to the application.
    """
    found = {}
    for sg in resources.server_groups:
        found[ResourceIdentity(CLUSTER_RESOURCE_TYPE, sg.type, sg.account, sg.moniker.cluster)] = None

    for lb in resources.load_balancers:
        if match_app_name(resources.app_name, lb.name):
            found[ResourceIdentity(_load_balancer_type(lb), lb.type, lb.account, lb.name)] = None

    for group in resources.security_groups:
        if match_app_name(resources.app_name, group.name):
            found[ResourceIdentity(SECURITY_GROUP_RESOURCE_TYPE, AWS_CLOUD_PROVIDER, group.account, group.name)] = None

    return list(found)


# ── Export ────────────────────────────────────────────────────────


async def export_resource(client: Client, identity: ResourceIdentity, service_account: str = "") -> bytes:
    """Fetch the delivery config YAML for one deployed resource."""
    path = (
        f"/managed/resources/export/{identity.cloud_provider}/{identity.account}"
        f"/{identity.resource_type}/{identity.name}?serviceAccount={quote(service_account)}"
    )
    return await client.request("GET", path)


async def export_artifact(client: Client, identity: ResourceIdentity) -> DeliveryArtifact:
    """Fetch the artifact deployed by a cluster."""
    path = f"/managed/resources/export/artifact/{identity.cloud_provider}/{identity.account}/{identity.name}"
    content = await client.request("GET", path)
    try:
        data = load_data(content)
    except InvalidContentError as e:
        raise InvalidContentError(content, e.parse_error, source=path) from e
    if not isinstance(data, dict):
        raise InvalidContentError(content, ValueError("artifact is not a YAML mapping"), source=path)
    return DeliveryArtifact.from_dict(data)
