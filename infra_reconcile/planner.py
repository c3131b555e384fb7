"""Resolution planning.

Turns the operator's choice into an executable ResolutionChoice. Nothing in
this module touches the cloud or the state file, so a rejected choice can
simply be asked for again.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .exceptions import InvalidResolutionError
from .models import Conflict, ResolutionAction, ResolutionChoice, ResourceKind
from .naming import PREFIX_PATTERN, extract_suffix, prefix_bucket_name, prefix_resource_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenamePreview:
    kind: ResourceKind
    old_name: str
    new_name: str


class ResolutionPlanner:
    """Validates and resolves operator resolution choices."""

    def __init__(self, project_name: Optional[str] = None, gcp_project_id: Optional[str] = None):
        self.project_name = project_name
        self.gcp_project_id = gcp_project_id

    @staticmethod
    def default_choice() -> ResolutionChoice:
        """Choice applied in non-interactive runs."""
        return ResolutionChoice(action=ResolutionAction.IMPORT_ALL)

    def plan(self, conflicts: Iterable[Conflict], choice: ResolutionChoice) -> ResolutionChoice:
        """Resolve ``choice`` against the detected conflicts.

        Args:
            conflicts: Conflicts from the classifier
            choice: The operator's choice

        Returns:
            The validated, normalized choice

        Raises:
            InvalidResolutionError: If the choice cannot be executed
        """
        conflicts = list(conflicts)

        if choice.action == ResolutionAction.CHANGE_PREFIX:
            prefix = self.validate_prefix(choice.new_prefix)
            resolved = ResolutionChoice(action=choice.action, new_prefix=prefix)
        elif choice.new_prefix is not None:
            raise InvalidResolutionError(
                f"A new prefix only applies to {ResolutionAction.CHANGE_PREFIX.value}",
                action=choice.action.value,
            )
        else:
            resolved = choice

        if resolved.action.is_mutating and not conflicts:
            logger.info(f"No conflicts to resolve; {resolved.action.value} will be a no-op")

        logger.debug(f"Planned {resolved.action.value} for {len(conflicts)} conflicts")
        return resolved

    def validate_prefix(self, new_prefix: Optional[str]) -> str:
        """Check a proposed project prefix.

        Raises:
            InvalidResolutionError: If the prefix is missing, malformed or unchanged
        """
        action = ResolutionAction.CHANGE_PREFIX.value
        if not new_prefix:
            raise InvalidResolutionError(
                "A new prefix is required to change the project prefix", action=action
            )

        prefix = new_prefix.strip()
        if not PREFIX_PATTERN.match(prefix):
            raise InvalidResolutionError(
                f"Invalid prefix '{prefix}': must start with a lowercase letter and "
                "contain only lowercase letters, numbers and hyphens (max 31 characters)",
                action=action,
                recovery_suggestion="Use something like 'myapp-v2'",
            )

        if self.project_name and prefix == self.project_name:
            raise InvalidResolutionError(
                f"New prefix '{prefix}' is the same as the current project name",
                action=action,
            )
        return prefix

    def preview_renames(
        self,
        conflicts: Iterable[Conflict],
        new_prefix: str,
        project_name: Optional[str] = None,
    ) -> List[RenamePreview]:
        """Names the conflicting resources would get under ``new_prefix``."""
        current = project_name or self.project_name or ""
        previews = []
        for conflict in conflicts:
            old_name = conflict.resource.name
            suffix = extract_suffix(old_name, current, self.gcp_project_id) if current else None
            base = suffix if suffix is not None else old_name
            if conflict.resource.kind == ResourceKind.STORAGE_BUCKET:
                new_name = prefix_bucket_name(new_prefix, base)
            else:
                new_name = prefix_resource_name(new_prefix, base)
            previews.append(
                RenamePreview(kind=conflict.resource.kind, old_name=old_name, new_name=new_name)
            )
        return previews
