"""Unit tests for conflict classification."""

import random

import pytest

from infra_reconcile.classifier import (
    ConflictClassifier,
    MatchNoteKind,
    MatchStrategy,
)
from infra_reconcile.import_mappings import IMPORT_MAPPINGS
from infra_reconcile.models import (
    CloudResource,
    ConflictType,
    ResourceKind,
    ScanResult,
    StateEntry,
)


def bucket(name):
    return CloudResource(kind=ResourceKind.STORAGE_BUCKET, name=name)


def entry(tf_type, label, name=None, **attrs):
    attributes = dict(attrs)
    if name is not None:
        attributes["name"] = name
    return StateEntry(
        address=f"{tf_type}.{label}", kind=tf_type, name=label, attributes=attributes
    )


@pytest.fixture
def classifier():
    return ConflictClassifier()


class TestBasicClassification:
    """Test the two conflict types."""

    def test_bucket_not_in_state(self, classifier):
        scan = ScanResult(resources=[bucket("proj-uploads")])

        result = classifier.classify(scan, [])

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.EXISTS_NOT_IN_STATE
        assert conflict.resource.name == "proj-uploads"
        assert conflict.in_state is False
        assert conflict.expected_name == "proj-uploads"

    def test_network_orphaned_from_previous(self, classifier):
        state = [entry("google_compute_network", "main", "main", region="us-central1")]

        result = classifier.classify(ScanResult(), state)

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.conflict_type == ConflictType.ORPHANED_FROM_PREVIOUS
        assert conflict.resource.kind == ResourceKind.VPC_NETWORK
        assert conflict.resource.name == "main"
        assert conflict.resource.location == "us-central1"
        assert conflict.in_state is True
        assert conflict.state_address == "google_compute_network.main"

    def test_in_sync(self, classifier):
        scan = ScanResult(resources=[bucket("proj-uploads")])
        state = [entry("google_storage_bucket", "proj-uploads", "proj-uploads")]

        result = classifier.classify(scan, state)

        assert not result.has_conflicts
        assert result.match_notes == []

    def test_never_both_types_for_one_resource(self, classifier):
        scan = ScanResult(resources=[bucket("proj-a"), bucket("proj-b")])
        state = [
            entry("google_storage_bucket", "proj-a", "proj-a"),
            entry("google_storage_bucket", "proj-c", "proj-c"),
        ]

        result = classifier.classify(scan, state)

        keys = [(c.resource.kind, c.resource.name) for c in result.conflicts]
        assert len(keys) == len(set(keys))
        assert [c.resource.name for c in result.to_import] == ["proj-b"]
        assert [c.resource.name for c in result.to_prune] == ["proj-c"]

    def test_duplicate_scan_entries_reported_once(self, classifier):
        scan = ScanResult(resources=[bucket("proj-x"), bucket("proj-x")])
        assert len(classifier.classify(scan, []).conflicts) == 1

    def test_each_orphaned_address_is_its_own_conflict(self, classifier):
        state = [
            entry("google_storage_bucket", "b", "proj-old"),
            entry("google_storage_bucket", "a", "proj-old"),
        ]

        result = classifier.classify(ScanResult(), state)

        assert [c.state_address for c in result.to_prune] == [
            "google_storage_bucket.a",
            "google_storage_bucket.b",
        ]
        assert {c.resource.name for c in result.conflicts} == {"proj-old"}

    def test_repeated_state_entry_reported_once(self, classifier):
        orphan = entry("google_compute_network", "main", "main")
        assert len(classifier.classify(ScanResult(), [orphan, orphan]).conflicts) == 1


class TestMatching:
    """Test match strategies and ambiguity reporting."""

    def test_label_match_is_heuristic(self, classifier):
        scan = ScanResult(resources=[bucket("proj-logs")])
        state = [entry("google_storage_bucket", "proj-logs")]

        result = classifier.classify(scan, state)

        assert not result.has_conflicts
        assert [n.kind for n in result.match_notes] == [MatchNoteKind.HEURISTIC]
        assert "state_label" in result.match_notes[0].detail

    def test_safe_name_match(self, classifier):
        scan = ScanResult(resources=[bucket("proj.data")])
        state = [entry("google_storage_bucket", "proj-data")]

        result = classifier.classify(scan, state)

        assert not result.has_conflicts
        assert "safe_name" in result.match_notes[0].detail

    def test_match_is_same_kind_only(self, classifier):
        scan = ScanResult(resources=[bucket("proj-x")])
        state = [entry("google_compute_network", "proj-x", "proj-x")]

        result = classifier.classify(scan, state)

        types = sorted(c.conflict_type.value for c in result.conflicts)
        assert types == ["exists_not_in_state", "orphaned_from_previous"]

    def test_ambiguous_match_flagged(self, classifier):
        scan = ScanResult(resources=[bucket("proj-x")])
        state = [
            entry("google_storage_bucket", "one", "proj-x"),
            entry("google_storage_bucket", "two", "proj-x"),
        ]

        result = classifier.classify(scan, state)

        assert not result.has_conflicts
        notes = [n for n in result.match_notes if n.kind == MatchNoteKind.AMBIGUOUS]
        assert len(notes) == 1
        assert "google_storage_bucket.one" in notes[0].detail
        assert "google_storage_bucket.two" in notes[0].detail

    def test_strategies_are_configurable(self):
        exact_only = ConflictClassifier(strategies=[MatchStrategy.EXACT_NAME])
        scan = ScanResult(resources=[bucket("proj-logs")])
        state = [entry("google_storage_bucket", "proj-logs")]

        result = exact_only.classify(scan, state)

        assert [c.conflict_type for c in result.conflicts] == [
            ConflictType.EXISTS_NOT_IN_STATE
        ]

    def test_empty_strategies_rejected(self):
        with pytest.raises(ValueError):
            ConflictClassifier(strategies=[])

    def test_untracked_and_unmanaged_entries_ignored(self, classifier):
        state = [
            entry("google_project_service", "compute", "compute.googleapis.com"),
            StateEntry(address="bare", kind="google_storage_bucket", name="bare",
                       attributes={"name": "proj-bare"}),
            entry("google_storage_bucket", "nameless"),
        ]
        assert not classifier.classify(ScanResult(), state).has_conflicts


class TestFailedKinds:
    """Test that failed scan kinds do not produce orphans by default."""

    def test_failed_kind_is_unverified(self, classifier):
        scan = ScanResult(failed_kinds=[ResourceKind.VPC_NETWORK], errors=["VPC Networks: x"])
        state = [entry("google_compute_network", "main", "main")]

        result = classifier.classify(scan, state)

        assert not result.has_conflicts
        assert [n.kind for n in result.match_notes] == [MatchNoteKind.UNVERIFIED]

    def test_failed_kind_reported_when_not_skipped(self):
        classifier = ConflictClassifier(skip_failed_kinds=False)
        scan = ScanResult(failed_kinds=[ResourceKind.VPC_NETWORK])
        state = [entry("google_compute_network", "main", "main")]

        result = classifier.classify(scan, state)

        assert [c.conflict_type for c in result.conflicts] == [
            ConflictType.ORPHANED_FROM_PREVIOUS
        ]


class TestDeterminism:
    """Test idempotence, order independence and convergence."""

    @pytest.fixture
    def mixed_inputs(self):
        resources = [
            bucket("proj-uploads"),
            CloudResource(kind=ResourceKind.VPC_NETWORK, name="proj-net"),
            CloudResource(kind=ResourceKind.FORWARDING_RULE, name="proj-lb-rule"),
            CloudResource(kind=ResourceKind.CLOUD_FUNCTION, name="proj-api", location="us-east1"),
            bucket("proj-logs"),
        ]
        state = [
            entry("google_storage_bucket", "proj-logs", "proj-logs"),
            entry("google_compute_network", "main", "main"),
            entry("google_cloud_run_v2_service", "old", "proj-old"),
        ]
        return resources, state

    def test_idempotent_and_order_independent(self, classifier, mixed_inputs):
        resources, state = mixed_inputs
        baseline = classifier.classify(ScanResult(resources=list(resources)), list(state))

        rng = random.Random(7)
        for _ in range(5):
            shuffled_resources = list(resources)
            shuffled_state = list(state)
            rng.shuffle(shuffled_resources)
            rng.shuffle(shuffled_state)
            again = classifier.classify(
                ScanResult(resources=shuffled_resources), shuffled_state
            )
            assert again.conflicts == baseline.conflicts
            assert again.match_notes == baseline.match_notes

    def test_convergence_after_import(self, classifier, mixed_inputs):
        resources, _ = mixed_inputs
        scan = ScanResult(resources=resources)
        first = classifier.classify(scan, [])
        assert len(first.conflicts) == len(resources)

        imported = []
        for conflict in first.conflicts:
            mapping = IMPORT_MAPPINGS[conflict.resource.kind]
            address = mapping.state_address_formatter(conflict.resource)
            tf_type, label = address.split(".", 1)
            imported.append(
                StateEntry(
                    address=address,
                    kind=tf_type,
                    name=label,
                    attributes={"name": conflict.resource.name},
                )
            )

        assert classifier.classify(scan, imported).conflicts == []

    def test_format_report(self, classifier):
        result = classifier.classify(ScanResult(resources=[bucket("proj-a")]), [])
        report = result.format_report()
        assert "Drift Detection Report" in report
        assert "proj-a" in report
