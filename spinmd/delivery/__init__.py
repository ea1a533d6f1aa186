"""Delivery config document model, processor and diff engine."""

from spinmd.delivery.diff import ManagedResourceDiff, ResourceDiff, parse_diff_response, sort_diffs
from spinmd.delivery.keysort import CONFIG_KEY_SORT_PRIORITY, sort_config_keys
from spinmd.delivery.processor import DeliveryConfigProcessor, ProcessorConfig
from spinmd.delivery.responses import PublishError, PublishErrorBody, ValidationErrorDetail
from spinmd.delivery.types import (
    DeliveryArtifact,
    DeliveryConfig,
    DeliveryEnvironment,
    DeliveryResource,
    Locations,
    Moniker,
    ResourceIdentity,
    VMOptions,
)

__all__ = [
    "CONFIG_KEY_SORT_PRIORITY",
    "DeliveryArtifact",
    "DeliveryConfig",
    "DeliveryConfigProcessor",
    "DeliveryEnvironment",
    "DeliveryResource",
    "Locations",
    "ManagedResourceDiff",
    "Moniker",
    "ProcessorConfig",
    "PublishError",
    "PublishErrorBody",
    "ResourceDiff",
    "ResourceIdentity",
    "VMOptions",
    "ValidationErrorDetail",
    "parse_diff_response",
    "sort_config_keys",
    "sort_diffs",
]
