"""Static per-kind import configuration.

Each tracked kind maps to the Terraform resource type it is managed as, two
pure formatters (import id and state address) and an import priority. Lower
priorities are imported first so that resources referenced by others are
already in state when their consumers are imported.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .config.models import ProjectSettings
from .models import CloudResource, Conflict, ResourceKind
from .naming import to_terraform_name

DEFAULT_IMPORT_PRIORITY = 50

ImportIdFormatter = Callable[[CloudResource, ProjectSettings], str]
StateAddressFormatter = Callable[[CloudResource], str]


@dataclass(frozen=True)
class ImportMapping:
    """How to import one kind of cloud resource into Terraform state."""

    target_managed_type: str
    import_id_formatter: ImportIdFormatter
    state_address_formatter: StateAddressFormatter
    import_priority: int


def _address(tf_type: str) -> StateAddressFormatter:
    return lambda r: f"{tf_type}.{to_terraform_name(r.name)}"


def _regional(collection: str) -> ImportIdFormatter:
    return lambda r, p: (
        f"projects/{p.gcp_project_id}/locations/{r.location or p.region}/{collection}/{r.name}"
    )


def _global(collection: str) -> ImportIdFormatter:
    return lambda r, p: f"projects/{p.gcp_project_id}/global/{collection}/{r.name}"


def _mapping(
    tf_type: str, import_id: ImportIdFormatter, priority: int
) -> ImportMapping:
    return ImportMapping(
        target_managed_type=tf_type,
        import_id_formatter=import_id,
        state_address_formatter=_address(tf_type),
        import_priority=priority,
    )


IMPORT_MAPPINGS: Dict[ResourceKind, ImportMapping] = {
    ResourceKind.VPC_NETWORK: _mapping(
        "google_compute_network", _global("networks"), 10
    ),
    ResourceKind.STORAGE_BUCKET: _mapping(
        "google_storage_bucket", lambda r, p: r.name, 20
    ),
    ResourceKind.ARTIFACT_REGISTRY: _mapping(
        "google_artifact_registry_repository", _regional("repositories"), 20
    ),
    ResourceKind.VPC_CONNECTOR: _mapping(
        "google_vpc_access_connector", _regional("connectors"), 30
    ),
    ResourceKind.CLOUD_FUNCTION: _mapping(
        "google_cloudfunctions2_function", _regional("functions"), 40
    ),
    ResourceKind.CLOUD_RUN: _mapping(
        "google_cloud_run_v2_service", _regional("services"), 40
    ),
    ResourceKind.NETWORK_ENDPOINT_GROUP: _mapping(
        "google_compute_region_network_endpoint_group",
        lambda r, p: (
            f"projects/{p.gcp_project_id}/regions/{r.location or p.region}"
            f"/networkEndpointGroups/{r.name}"
        ),
        50,
    ),
    ResourceKind.BACKEND_SERVICE: _mapping(
        "google_compute_backend_service", _global("backendServices"), 60
    ),
    ResourceKind.BACKEND_BUCKET: _mapping(
        "google_compute_backend_bucket", _global("backendBuckets"), 60
    ),
    ResourceKind.URL_MAP: _mapping("google_compute_url_map", _global("urlMaps"), 70),
    ResourceKind.SSL_CERTIFICATE: _mapping(
        "google_compute_managed_ssl_certificate", _global("sslCertificates"), 75
    ),
    ResourceKind.TARGET_HTTP_PROXY: _mapping(
        "google_compute_target_http_proxy", _global("targetHttpProxies"), 80
    ),
    ResourceKind.TARGET_HTTPS_PROXY: _mapping(
        "google_compute_target_https_proxy", _global("targetHttpsProxies"), 80
    ),
    ResourceKind.GLOBAL_ADDRESS: _mapping(
        "google_compute_global_address", _global("addresses"), 85
    ),
    ResourceKind.FORWARDING_RULE: _mapping(
        "google_compute_global_forwarding_rule", _global("forwardingRules"), 90
    ),
}

# Reverse lookup used to interpret state entries
TERRAFORM_TYPE_TO_KIND: Dict[str, ResourceKind] = {
    mapping.target_managed_type: kind for kind, mapping in IMPORT_MAPPINGS.items()
}


def terraform_type_for(kind: ResourceKind) -> str:
    return IMPORT_MAPPINGS[kind].target_managed_type


def kind_for_terraform_type(tf_type: str) -> Optional[ResourceKind]:
    return TERRAFORM_TYPE_TO_KIND.get(tf_type)


def import_priority(kind: ResourceKind) -> int:
    mapping = IMPORT_MAPPINGS.get(kind)
    return mapping.import_priority if mapping else DEFAULT_IMPORT_PRIORITY


def sort_conflicts_for_import(conflicts: Iterable[Conflict]) -> List[Conflict]:
    """Order conflicts so dependencies are imported before their consumers."""
    return sorted(conflicts, key=lambda c: import_priority(c.resource.kind))


def sort_conflicts_for_deletion(conflicts: Iterable[Conflict]) -> List[Conflict]:
    """Order conflicts so consumers are deleted before their dependencies."""
    return sorted(conflicts, key=lambda c: import_priority(c.resource.kind), reverse=True)


def get_import_command(
    resource: CloudResource, project: ProjectSettings, binary: str = "terraform"
) -> str:
    """Render the terraform import command for display."""
    mapping = IMPORT_MAPPINGS.get(resource.kind)
    if mapping is None:
        return f"# Unknown resource type: {resource.kind}"
    address = mapping.state_address_formatter(resource)
    import_id = mapping.import_id_formatter(resource, project)
    return f"{binary} import '{address}' '{import_id}'"
