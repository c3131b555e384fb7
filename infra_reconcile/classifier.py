"""Conflict classification between scanned cloud resources and state entries.

Classification is a pure function of its inputs: the same scan and state,
in any order, always produce the same conflict list.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .import_mappings import kind_for_terraform_type
from .models import (
    CloudResource,
    Conflict,
    ConflictType,
    ResourceKind,
    ScanResult,
    StateEntry,
)
from .naming import to_terraform_name
from .state_reader import StateReadResult, TerraformState

logger = logging.getLogger(__name__)


class MatchStrategy(str, Enum):
    """Ways a cloud resource can be matched to a state entry."""

    EXACT_NAME = "exact_name"  # recovered name == cloud name
    STATE_LABEL = "state_label"  # resource label == cloud name
    SAFE_NAME = "safe_name"  # resource label == normalized cloud name


DEFAULT_STRATEGIES: Tuple[MatchStrategy, ...] = (
    MatchStrategy.EXACT_NAME,
    MatchStrategy.STATE_LABEL,
    MatchStrategy.SAFE_NAME,
)


class MatchNoteKind(str, Enum):
    AMBIGUOUS = "ambiguous"
    HEURISTIC = "heuristic"
    UNVERIFIED = "unverified"


@dataclass(frozen=True)
class MatchNote:
    """A match the classifier made but could not make with certainty."""

    kind: MatchNoteKind
    resource_kind: ResourceKind
    resource_name: str
    detail: str


@dataclass
class ClassificationResult:
    """Conflicts found in one classification pass."""

    conflicts: List[Conflict] = field(default_factory=list)
    match_notes: List[MatchNote] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    def by_type(self, conflict_type: ConflictType) -> List[Conflict]:
        return [c for c in self.conflicts if c.conflict_type == conflict_type]

    @property
    def to_import(self) -> List[Conflict]:
        return self.by_type(ConflictType.EXISTS_NOT_IN_STATE)

    @property
    def to_prune(self) -> List[Conflict]:
        return self.by_type(ConflictType.ORPHANED_FROM_PREVIOUS)

    def format_report(self) -> str:
        """Generate human-readable classification report."""
        if not self.conflicts:
            return "No conflicts detected. State and cloud are in sync."

        lines = [
            "=" * 60,
            "Drift Detection Report",
            "=" * 60,
            f"Total conflicts: {len(self.conflicts)}",
            f"  In cloud, not in state: {len(self.to_import)}",
            f"  In state, not in cloud: {len(self.to_prune)}",
            "",
        ]
        for conflict in self.conflicts:
            lines.append(f"  - {conflict}")

        if self.match_notes:
            lines.append("")
            lines.append("MATCH NOTES:")
            for note in self.match_notes:
                lines.append(f"  [{note.kind.value}] {note.resource_name}: {note.detail}")

        return "\n".join(lines)


def _entry_location(entry: StateEntry) -> Optional[str]:
    if not isinstance(entry.attributes, dict):
        return None
    value = entry.attributes.get("location") or entry.attributes.get("region")
    if isinstance(value, str) and value:
        return value.rstrip("/").split("/")[-1]
    return None


def _conflict_sort_key(conflict: Conflict) -> Tuple[str, str, str, str]:
    return (
        conflict.conflict_type.value,
        conflict.resource.kind.value,
        conflict.resource.name,
        conflict.state_address or "",
    )


class ConflictClassifier:
    """Diffs a cloud scan against a Terraform state.

    Matching is restricted to entries of the same kind. Strategies are tried
    in order and the first one that yields any candidate wins. Matches that
    relied on a fallback strategy or hit several entries are reported as
    match notes rather than silently accepted.
    """

    def __init__(
        self,
        strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
        skip_failed_kinds: bool = True,
    ):
        if not strategies:
            raise ValueError("At least one match strategy is required")
        self.strategies = tuple(strategies)
        self.skip_failed_kinds = skip_failed_kinds

    def classify(
        self,
        scan_result: ScanResult,
        state: Union[StateReadResult, TerraformState, Iterable[StateEntry]],
    ) -> ClassificationResult:
        """Classify every discrepancy between ``scan_result`` and ``state``.

        Args:
            scan_result: Output of ResourceScanner.scan
            state: State read result, parsed state, or plain state entries

        Returns:
            ClassificationResult with conflicts in deterministic order
        """
        entries_by_kind = self._tracked_entries(self._entries_of(state))
        resources = sorted(
            {(r.kind, r.name): r for r in scan_result.resources}.values(),
            key=lambda r: (r.kind.value, r.name),
        )

        result = ClassificationResult()
        matched: Set[str] = set()

        for resource in resources:
            candidates, strategy = self._find_matches(
                resource, entries_by_kind.get(resource.kind, [])
            )
            if not candidates:
                result.conflicts.append(
                    Conflict(
                        resource=resource,
                        in_state=False,
                        expected_name=resource.name,
                        conflict_type=ConflictType.EXISTS_NOT_IN_STATE,
                    )
                )
                continue

            matched.update(entry.address for entry in candidates)
            if len(candidates) > 1:
                result.match_notes.append(
                    MatchNote(
                        kind=MatchNoteKind.AMBIGUOUS,
                        resource_kind=resource.kind,
                        resource_name=resource.name,
                        detail="matches "
                        + ", ".join(entry.address for entry in candidates),
                    )
                )
            if strategy != MatchStrategy.EXACT_NAME:
                result.match_notes.append(
                    MatchNote(
                        kind=MatchNoteKind.HEURISTIC,
                        resource_kind=resource.kind,
                        resource_name=resource.name,
                        detail=f"matched {candidates[0].address} by {strategy.value}",
                    )
                )

        failed_kinds = set(scan_result.failed_kinds)
        seen_orphans: Set[str] = set()
        for kind in sorted(entries_by_kind, key=lambda k: k.value):
            for entry in entries_by_kind[kind]:
                recovered = entry.recovered_name
                if entry.address in matched or not recovered:
                    continue
                if self.skip_failed_kinds and kind in failed_kinds:
                    result.match_notes.append(
                        MatchNote(
                            kind=MatchNoteKind.UNVERIFIED,
                            resource_kind=kind,
                            resource_name=recovered,
                            detail=f"{entry.address} not checked, {kind.label} scan failed",
                        )
                    )
                    continue
                if entry.address in seen_orphans:
                    continue
                seen_orphans.add(entry.address)
                result.conflicts.append(
                    Conflict(
                        resource=CloudResource(
                            kind=kind, name=recovered, location=_entry_location(entry)
                        ),
                        in_state=True,
                        state_address=entry.address,
                        expected_name=recovered,
                        conflict_type=ConflictType.ORPHANED_FROM_PREVIOUS,
                    )
                )

        result.conflicts.sort(key=_conflict_sort_key)
        result.match_notes.sort(
            key=lambda n: (n.kind.value, n.resource_kind.value, n.resource_name, n.detail)
        )

        logger.info(
            f"Classified {len(resources)} cloud resources against "
            f"{sum(len(v) for v in entries_by_kind.values())} state entries: "
            f"{len(result.to_import)} to import, {len(result.to_prune)} orphaned"
        )
        return result

    @staticmethod
    def _entries_of(state) -> List[StateEntry]:
        if isinstance(state, StateReadResult):
            return list(state.entries)
        if isinstance(state, TerraformState):
            return list(state.entries)
        return list(state or [])

    @staticmethod
    def _tracked_entries(entries: Iterable[StateEntry]) -> Dict[ResourceKind, List[StateEntry]]:
        """Group managed entries by tracked kind, dropping untracked types."""
        grouped: Dict[ResourceKind, List[StateEntry]] = {}
        for entry in entries:
            kind = kind_for_terraform_type(entry.kind)
            if kind is None or not entry.is_managed:
                continue
            grouped.setdefault(kind, []).append(entry)
        for kind_entries in grouped.values():
            kind_entries.sort(key=lambda e: e.address)
        return grouped

    def _find_matches(
        self, resource: CloudResource, entries: List[StateEntry]
    ) -> Tuple[List[StateEntry], Optional[MatchStrategy]]:
        for strategy in self.strategies:
            candidates = [e for e in entries if self._matches(strategy, resource, e)]
            if candidates:
                return candidates, strategy
        return [], None

    @staticmethod
    def _matches(strategy: MatchStrategy, resource: CloudResource, entry: StateEntry) -> bool:
        if strategy == MatchStrategy.EXACT_NAME:
            return bool(entry.recovered_name) and entry.recovered_name == resource.name
        if strategy == MatchStrategy.STATE_LABEL:
            return entry.name == resource.name
        return entry.name == to_terraform_name(resource.name)
