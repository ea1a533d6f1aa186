"""Live application state as reported by the Spinnaker API."""

from dataclasses import dataclass, field

from spinmd.delivery.types import Moniker


def _names(items) -> list[str]:
    """Target/server group lists come as ``[{"name": ...}]`` or plain strings."""
    names = []
    for item in items or []:
        names.append(item.get("name", "") if isinstance(item, dict) else str(item))
    return names


@dataclass
class ServerGroup:
    """A deployed group of instances (ASG or Titus job) belonging to a cluster."""

    name: str = ""
    application: str = ""
    region: str = ""
    account: str = ""
    type: str = ""
    moniker: Moniker = field(default_factory=Moniker)
    load_balancers: list[str] = field(default_factory=list)
    target_groups: list[str] = field(default_factory=list)
    security_groups: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d) -> "ServerGroup":
        return cls(
            name=d.get("name") or "",
            application=d.get("application") or "",
            region=d.get("region") or "",
            account=d.get("account") or "",
            type=d.get("type") or "",
            moniker=Moniker.from_dict(d.get("moniker")),
            load_balancers=list(d.get("loadBalancers") or []),
            target_groups=list(d.get("targetGroups") or []),
            security_groups=list(d.get("securityGroups") or []),
        )


@dataclass
class LoadBalancer:
    """A load balancer; ``target_groups`` is only populated for ALBs and NLBs."""

    name: str = ""
    account: str = ""
    region: str = ""
    type: str = ""
    load_balancer_type: str = ""
    security_groups: list[str] = field(default_factory=list)
    server_groups: list[str] = field(default_factory=list)
    target_groups: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d) -> "LoadBalancer":
        return cls(
            name=d.get("name") or "",
            account=d.get("account") or "",
            region=d.get("region") or "",
            type=d.get("type") or "",
            load_balancer_type=d.get("loadBalancerType") or "",
            security_groups=list(d.get("securityGroups") or []),
            server_groups=_names(d.get("serverGroups")),
            target_groups=_names(d.get("targetGroups")),
        )


@dataclass
class SecurityGroup:
    name: str = ""
    id: str = ""
    region: str = ""
    account: str = ""

    @classmethod
    def from_dict(cls, d) -> "SecurityGroup":
        return cls(
            name=d.get("name") or "",
            id=d.get("id") or "",
            region=d.get("region") or "",
            account=d.get("account") or "",
        )


@dataclass
class ApplicationResources:
    """Everything discovered for one application."""

    app_name: str
    server_groups: list[ServerGroup] = field(default_factory=list)
    load_balancers: list[LoadBalancer] = field(default_factory=list)
    security_groups: list[SecurityGroup] = field(default_factory=list)
