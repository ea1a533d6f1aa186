"""Delivery config dataclass types and resource identity."""

from dataclasses import dataclass, field

# Resource type keywords used in kinds like ``ec2/cluster@v1``.
CLUSTER_RESOURCE_TYPE = "cluster"
LOAD_BALANCER_RESOURCE_TYPE = "classic-load-balancer"
APPLICATION_LOAD_BALANCER_RESOURCE_TYPE = "application-load-balancer"
NETWORK_LOAD_BALANCER_RESOURCE_TYPE = "network-load-balancer"
SECURITY_GROUP_RESOURCE_TYPE = "security-group"

AWS_CLOUD_PROVIDER = "aws"
TITUS_CLOUD_PROVIDER = "titus"

# Kind prefixes use "ec2" where the API uses the "aws" cloud provider.
_KIND_PROVIDER_ALIASES = {AWS_CLOUD_PROVIDER: "ec2"}
_CLOUD_PROVIDER_ALIASES = {v: k for k, v in _KIND_PROVIDER_ALIASES.items()}


def _str(value) -> str:
    return "" if value is None else str(value)


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _sequence(value) -> list:
    return list(value) if isinstance(value, list) else []


@dataclass(frozen=True)
class ResourceIdentity:
    """Logical identity of a deployable resource.

    Used as a lookup token: a dict key while deduplicating discovered
    resources, and a search key when locating a resource in the document.
    """

    resource_type: str
    cloud_provider: str
    account: str
    name: str

    def __str__(self):
        return f"{self.resource_type} {self.name} [{self.cloud_provider}/{self.account}]"

    def has_kind(self, kind: str) -> bool:
        """True if *kind* (e.g. ``ec2/cluster@v1``) is of this resource's provider and type."""
        provider = _KIND_PROVIDER_ALIASES.get(self.cloud_provider, self.cloud_provider)
        return kind.startswith(f"{provider}/{self.resource_type}@")

    def sort_key(self):
        return (self.resource_type, self.name, self.cloud_provider, self.account)


@dataclass
class Moniker:
    """Spinnaker naming metadata attached to every resource."""

    app: str = ""
    stack: str = ""
    detail: str = ""
    cluster: str = ""
    sequence: int = 0

    def __str__(self):
        parts = []
        for part in (self.app, self.stack, self.detail):
            if not part:
                break
            parts.append(part)
        if self.sequence > 0:
            parts.append(f"v{self.sequence:03d}")
        return "-".join(parts)

    @classmethod
    def from_dict(cls, d) -> "Moniker":
        d = _mapping(d)
        return cls(
            app=_str(d.get("app")),
            stack=_str(d.get("stack")),
            detail=_str(d.get("detail")),
            cluster=_str(d.get("cluster")),
            sequence=int(d.get("sequence") or 0),
        )


@dataclass
class Locations:
    """Account and regions a resource (or environment default) is deployed to."""

    account: str = ""
    regions: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.account and not self.regions

    @classmethod
    def from_dict(cls, d) -> "Locations":
        d = _mapping(d)
        regions = []
        for region in _sequence(d.get("regions")):
            if isinstance(region, dict):
                regions.append(_str(region.get("name")))
            else:
                regions.append(_str(region))
        return cls(account=_str(d.get("account")), regions=regions)


@dataclass
class ResourceSpec:
    """The parts of a resource spec the processor needs; the rest stays in the raw tree."""

    moniker: Moniker = field(default_factory=Moniker)
    locations: Locations = field(default_factory=Locations)
    artifact_reference: str = ""
    image_provider_reference: str = ""
    container_reference: str = ""

    @classmethod
    def from_dict(cls, d) -> "ResourceSpec":
        d = _mapping(d)
        return cls(
            moniker=Moniker.from_dict(d.get("moniker")),
            locations=Locations.from_dict(d.get("locations")),
            artifact_reference=_str(d.get("artifactReference")),
            image_provider_reference=_str(_mapping(d.get("imageProvider")).get("reference")),
            container_reference=_str(_mapping(d.get("container")).get("reference")),
        )


@dataclass
class DeliveryResource:
    """A managed resource, e.g. ``kind: ec2/cluster@v1`` plus its spec."""

    kind: str = ""
    spec: ResourceSpec = field(default_factory=ResourceSpec)

    @property
    def name(self) -> str:
        return str(self.spec.moniker)

    @property
    def account(self) -> str:
        return self.spec.locations.account

    @property
    def cloud_provider(self) -> str:
        """Provider part of the kind, with ``ec2`` reported as ``aws``."""
        provider = self.kind.split("/", 1)[0]
        if not provider:
            return "unknown-cloud-provider"
        return _CLOUD_PROVIDER_ALIASES.get(provider, provider)

    @property
    def resource_type(self) -> str:
        """Type inferred from the kind: ``ec2/cluster@v1`` -> ``cluster``."""
        left = self.kind.find("/") + 1
        right = self.kind.rfind("@")
        if right < left:
            right = len(self.kind)
        return self.kind[left:right]

    @property
    def artifact_reference(self) -> str:
        return self.spec.artifact_reference or self.spec.image_provider_reference or self.spec.container_reference

    def match(self, identity: ResourceIdentity) -> bool:
        return (
            identity.has_kind(self.kind)
            and self.cloud_provider == identity.cloud_provider
            and self.account == identity.account
            and self.name == identity.name
        )

    @classmethod
    def from_dict(cls, d) -> "DeliveryResource":
        d = _mapping(d)
        return cls(kind=_str(d.get("kind")), spec=ResourceSpec.from_dict(d.get("spec")))


@dataclass
class VMOptions:
    """Bake options of a package artifact."""

    base_label: str = ""
    base_os: str = ""
    regions: list[str] = field(default_factory=list)
    store_type: str = ""

    @property
    def empty(self) -> bool:
        return self == VMOptions()

    def to_dict(self) -> dict:
        d = {}
        if self.base_label:
            d["baseLabel"] = self.base_label
        if self.base_os:
            d["baseOs"] = self.base_os
        if self.regions:
            d["regions"] = list(self.regions)
        if self.store_type:
            d["storeType"] = self.store_type
        return d

    @classmethod
    def from_dict(cls, d) -> "VMOptions":
        d = _mapping(d)
        return cls(
            base_label=_str(d.get("baseLabel")),
            base_os=_str(d.get("baseOs")),
            regions=[_str(r) for r in _sequence(d.get("regions"))],
            store_type=_str(d.get("storeType")),
        )


_ARTIFACT_KEYS = {"name", "type", "reference", "tagVersionStrategy", "vmOptions"}


@dataclass
class DeliveryArtifact:
    """A build output (debian package, docker image) that resources deploy.

    Unmodelled keys such as ``from`` are kept in ``extra`` so that they
    are written back unchanged.
    """

    name: str = ""
    type: str = ""
    reference: str = ""
    tag_version_strategy: str = ""
    vm_options: VMOptions = field(default_factory=VMOptions)
    extra: dict = field(default_factory=dict)

    @property
    def ref_name(self) -> str:
        """Alias resources use to point at this artifact: reference, else name."""
        return self.reference or self.name

    def equivalent_to(self, other: "DeliveryArtifact") -> bool:
        """Same build metadata. Name and reference are deliberately not compared."""
        return self.tag_version_strategy == other.tag_version_strategy and self.vm_options == other.vm_options

    def to_dict(self) -> dict:
        d = {"name": self.name, "type": self.type}
        if self.reference:
            d["reference"] = self.reference
        if self.tag_version_strategy:
            d["tagVersionStrategy"] = self.tag_version_strategy
        if not self.vm_options.empty:
            d["vmOptions"] = self.vm_options.to_dict()
        d.update(self.extra)
        return d

    @classmethod
    def from_dict(cls, d) -> "DeliveryArtifact":
        d = _mapping(d)
        return cls(
            name=_str(d.get("name")),
            type=_str(d.get("type")),
            reference=_str(d.get("reference")),
            tag_version_strategy=_str(d.get("tagVersionStrategy")),
            vm_options=VMOptions.from_dict(d.get("vmOptions")),
            extra={k: v for k, v in d.items() if k not in _ARTIFACT_KEYS},
        )


@dataclass
class DeliveryEnvironment:
    """A deployment stage holding resources."""

    name: str = ""
    locations: Locations = field(default_factory=Locations)
    constraints: list = field(default_factory=list)
    notifications: list = field(default_factory=list)
    verify_with: list = field(default_factory=list)
    post_deploy: list = field(default_factory=list)
    resources: list[DeliveryResource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d) -> "DeliveryEnvironment":
        d = _mapping(d)
        return cls(
            name=_str(d.get("name")),
            locations=Locations.from_dict(d.get("locations")),
            constraints=_sequence(d.get("constraints")),
            notifications=_sequence(d.get("notifications")),
            verify_with=_sequence(d.get("verifyWith")),
            post_deploy=_sequence(d.get("postDeploy")),
            resources=[DeliveryResource.from_dict(r) for r in _sequence(d.get("resources"))],
        )


@dataclass
class DeliveryConfig:
    """Typed view of the whole delivery config document."""

    name: str = ""
    application: str = ""
    service_account: str = ""
    artifacts: list[DeliveryArtifact] = field(default_factory=list)
    environments: list[DeliveryEnvironment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d) -> "DeliveryConfig":
        d = _mapping(d)
        return cls(
            name=_str(d.get("name")),
            application=_str(d.get("application")),
            service_account=_str(d.get("serviceAccount")),
            artifacts=[DeliveryArtifact.from_dict(a) for a in _sequence(d.get("artifacts"))],
            environments=[DeliveryEnvironment.from_dict(e) for e in _sequence(d.get("environments"))],
        )
