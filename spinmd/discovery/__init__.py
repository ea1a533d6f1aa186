"""Live resource discovery and export."""

from spinmd.discovery.resources import (
    exportable_application_resources,
    export_artifact,
    export_resource,
    find_application_resources,
    get_load_balancers,
    get_security_groups,
    get_server_groups,
    match_app_name,
)
from spinmd.discovery.types import ApplicationResources, LoadBalancer, SecurityGroup, ServerGroup

__all__ = [
    "ApplicationResources",
    "LoadBalancer",
    "SecurityGroup",
    "ServerGroup",
    "export_artifact",
    "export_resource",
    "exportable_application_resources",
    "find_application_resources",
    "get_load_balancers",
    "get_security_groups",
    "get_server_groups",
    "match_app_name",
]
