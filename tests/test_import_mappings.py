"""Unit tests for per-kind import mappings and ordering."""

from infra_reconcile.import_mappings import (
    DEFAULT_IMPORT_PRIORITY,
    IMPORT_MAPPINGS,
    get_import_command,
    import_priority,
    kind_for_terraform_type,
    sort_conflicts_for_deletion,
    sort_conflicts_for_import,
    terraform_type_for,
)
from infra_reconcile.models import CloudResource, ResourceKind
from tests.helpers import conflict_for


def import_id(kind, name, project, location=None):
    resource = CloudResource(kind=kind, name=name, location=location)
    return IMPORT_MAPPINGS[kind].import_id_formatter(resource, project)


class TestMappingTable:
    def test_every_kind_mapped(self):
        assert set(IMPORT_MAPPINGS) == set(ResourceKind)

    def test_reverse_lookup(self):
        for kind in ResourceKind:
            assert kind_for_terraform_type(terraform_type_for(kind)) == kind
        assert kind_for_terraform_type("google_project_service") is None

    def test_bucket_import_id_is_bare_name(self, project_settings):
        assert import_id(ResourceKind.STORAGE_BUCKET, "proj-uploads", project_settings) == (
            "proj-uploads"
        )

    def test_regional_import_id(self, project_settings):
        assert import_id(
            ResourceKind.CLOUD_FUNCTION, "proj-api", project_settings, location="us-east1"
        ) == "projects/my-gcp/locations/us-east1/functions/proj-api"
        # Falls back to the project region
        assert import_id(ResourceKind.CLOUD_RUN, "proj-web", project_settings) == (
            "projects/my-gcp/locations/us-central1/services/proj-web"
        )

    def test_global_import_id(self, project_settings):
        assert import_id(ResourceKind.VPC_NETWORK, "proj-net", project_settings) == (
            "projects/my-gcp/global/networks/proj-net"
        )
        assert import_id(ResourceKind.FORWARDING_RULE, "proj-rule", project_settings) == (
            "projects/my-gcp/global/forwardingRules/proj-rule"
        )

    def test_neg_import_id(self, project_settings):
        assert import_id(
            ResourceKind.NETWORK_ENDPOINT_GROUP, "proj-neg", project_settings, location="us-west1"
        ) == "projects/my-gcp/regions/us-west1/networkEndpointGroups/proj-neg"

    def test_state_address_uses_safe_name(self):
        resource = CloudResource(kind=ResourceKind.STORAGE_BUCKET, name="proj.assets")
        address = IMPORT_MAPPINGS[ResourceKind.STORAGE_BUCKET].state_address_formatter(resource)
        assert address == "google_storage_bucket.proj-assets"

    def test_get_import_command(self, project_settings):
        resource = CloudResource(kind=ResourceKind.URL_MAP, name="proj-lb")
        assert get_import_command(resource, project_settings) == (
            "terraform import 'google_compute_url_map.proj-lb' "
            "'projects/my-gcp/global/urlMaps/proj-lb'"
        )


class TestOrdering:
    def test_priorities(self):
        assert import_priority(ResourceKind.VPC_NETWORK) == 10
        assert import_priority(ResourceKind.ARTIFACT_REGISTRY) == 20
        assert import_priority(ResourceKind.NETWORK_ENDPOINT_GROUP) == DEFAULT_IMPORT_PRIORITY
        assert import_priority(ResourceKind.SSL_CERTIFICATE) == 75
        assert import_priority(ResourceKind.FORWARDING_RULE) == 90

    def test_import_order_is_stable(self):
        conflicts = [
            conflict_for(ResourceKind.FORWARDING_RULE, "proj-rule"),
            conflict_for(ResourceKind.CLOUD_RUN, "proj-b"),
            conflict_for(ResourceKind.CLOUD_FUNCTION, "proj-a"),
            conflict_for(ResourceKind.VPC_NETWORK, "proj-net"),
        ]
        names = [c.resource.name for c in sort_conflicts_for_import(conflicts)]
        assert names == ["proj-net", "proj-b", "proj-a", "proj-rule"]

    def test_deletion_order_is_reversed(self):
        conflicts = [
            conflict_for(ResourceKind.VPC_NETWORK, "proj-net"),
            conflict_for(ResourceKind.URL_MAP, "proj-map"),
            conflict_for(ResourceKind.FORWARDING_RULE, "proj-rule"),
        ]
        names = [c.resource.name for c in sort_conflicts_for_deletion(conflicts)]
        assert names == ["proj-rule", "proj-map", "proj-net"]
