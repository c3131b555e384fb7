"""Core data types shared by the scanner, classifier, planner and executor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ResourceKind(str, Enum):
    """Cloud resource categories tracked by the reconciliation engine."""

    CLOUD_FUNCTION = "cloudfunctions"
    CLOUD_RUN = "cloudrun"
    STORAGE_BUCKET = "storage"
    VPC_NETWORK = "vpc_network"
    VPC_CONNECTOR = "vpc_connector"
    ARTIFACT_REGISTRY = "artifact_registry"
    GLOBAL_ADDRESS = "global_address"
    URL_MAP = "url_map"
    BACKEND_SERVICE = "backend_service"
    BACKEND_BUCKET = "backend_bucket"
    FORWARDING_RULE = "forwarding_rule"
    TARGET_HTTP_PROXY = "target_http_proxy"
    TARGET_HTTPS_PROXY = "target_https_proxy"
    NETWORK_ENDPOINT_GROUP = "network_endpoint_group"
    SSL_CERTIFICATE = "ssl_certificate"

    @property
    def label(self) -> str:
        """Human-readable plural label used in reports."""
        return KIND_LABELS[self]


KIND_LABELS: Dict[ResourceKind, str] = {
    ResourceKind.CLOUD_FUNCTION: "Cloud Functions",
    ResourceKind.CLOUD_RUN: "Cloud Run Services",
    ResourceKind.STORAGE_BUCKET: "Storage Buckets",
    ResourceKind.VPC_NETWORK: "VPC Networks",
    ResourceKind.VPC_CONNECTOR: "VPC Connectors",
    ResourceKind.ARTIFACT_REGISTRY: "Artifact Registries",
    ResourceKind.GLOBAL_ADDRESS: "Global Addresses",
    ResourceKind.URL_MAP: "URL Maps",
    ResourceKind.BACKEND_SERVICE: "Backend Services",
    ResourceKind.BACKEND_BUCKET: "Backend Buckets",
    ResourceKind.FORWARDING_RULE: "Forwarding Rules",
    ResourceKind.TARGET_HTTP_PROXY: "HTTP Proxies",
    ResourceKind.TARGET_HTTPS_PROXY: "HTTPS Proxies",
    ResourceKind.NETWORK_ENDPOINT_GROUP: "Network Endpoint Groups",
    ResourceKind.SSL_CERTIFICATE: "SSL Certificates",
}


@dataclass(frozen=True)
class CloudResource:
    """A resource found in the cloud project during a scan.

    Attributes:
        kind: Resource category
        name: Short resource name (last path segment)
        location: Region or zone, when the kind is regional
        external_ref: Self link or fully-qualified resource path
        created_at: Creation timestamp as reported by the cloud API
    """

    kind: ResourceKind
    name: str
    location: Optional[str] = None
    external_ref: Optional[str] = None
    created_at: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.name}"


@dataclass(frozen=True)
class StateEntry:
    """One managed resource instance recorded in the Terraform state file."""

    address: str
    kind: str  # Terraform resource type, e.g. google_storage_bucket
    name: str  # Terraform resource label
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def recovered_name(self) -> str:
        """Cloud-side name recorded in the entry's attributes ("" if absent)."""
        if not isinstance(self.attributes, dict):
            return ""
        value = self.attributes.get("name")
        if not isinstance(value, str) or not value:
            return ""
        # Some providers store the full resource path in "name"
        return value.rstrip("/").split("/")[-1]

    @property
    def is_managed(self) -> bool:
        return "." in self.address


@dataclass
class ScanResult:
    """Resources returned by one scan plus per-kind errors."""

    resources: List[CloudResource] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    failed_kinds: List[ResourceKind] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class ConflictType(str, Enum):
    """Kinds of drift between cloud and state."""

    EXISTS_NOT_IN_STATE = "exists_not_in_state"
    ORPHANED_FROM_PREVIOUS = "orphaned_from_previous"


@dataclass(frozen=True)
class Conflict:
    """A single discrepancy between the cloud project and the state file."""

    resource: CloudResource
    in_state: bool
    expected_name: str
    conflict_type: ConflictType
    state_address: Optional[str] = None

    def __str__(self) -> str:
        if self.conflict_type == ConflictType.EXISTS_NOT_IN_STATE:
            return f"{self.resource} exists in the cloud but not in state"
        return f"{self.resource} is in state ({self.state_address}) but missing from the cloud"


class ResolutionAction(str, Enum):
    """Operator choices for resolving a set of conflicts."""

    IMPORT_ALL = "import_all"
    DELETE_ALL = "delete_all"
    CHANGE_PREFIX = "change_prefix"
    LIST_DETAILS = "list_details"
    CANCEL = "cancel"

    @property
    def is_mutating(self) -> bool:
        return self in (ResolutionAction.IMPORT_ALL, ResolutionAction.DELETE_ALL)


@dataclass(frozen=True)
class ResolutionChoice:
    """The chosen resolution for one reconciliation run."""

    action: ResolutionAction
    new_prefix: Optional[str] = None


@dataclass(frozen=True)
class FailedOperation:
    """A resource whose import or delete failed."""

    name: str
    error: str


@dataclass
class OperationResult:
    """Outcome of executing a resolution against a set of conflicts."""

    action: ResolutionAction
    succeeded: List[str] = field(default_factory=list)
    failed: List[FailedOperation] = field(default_factory=list)
    mutated: bool = False
    requires_config_update: bool = False
    message: Optional[str] = None
    details: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True iff no individual operation failed."""
        return len(self.failed) == 0

    def record_success(self, name: str) -> None:
        self.succeeded.append(name)
        self.mutated = True

    def record_failure(self, name: str, error: str) -> None:
        self.failed.append(FailedOperation(name=name, error=error or "Unknown error"))

    def format_report(self) -> str:
        """Generate human-readable operation summary."""
        lines = [
            "=" * 60,
            f"Reconciliation Result ({self.action.value})",
            "=" * 60,
            f"Succeeded: {len(self.succeeded)}",
            f"Failed: {len(self.failed)}",
        ]

        if self.message:
            lines.append("")
            lines.append(self.message)

        if self.failed:
            lines.append("")
            lines.append("FAILED:")
            lines.append("-" * 60)
            for failure in self.failed:
                lines.append(f"  {failure.name}")
                lines.append(f"    Error: {failure.error}")

        if self.warnings:
            lines.append("\nWARNINGS:")
            for warning in self.warnings:
                lines.append(f"  {warning}")

        return "\n".join(lines)
