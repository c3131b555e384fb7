"""Execution of resolution choices against Terraform state.

Imports and state removals run strictly one at a time: Terraform holds a
lock on the state file and does not support concurrent writes. Every
resource is attempted independently and its outcome recorded; there is no
rollback of operations that already succeeded.
"""

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from .config.models import ProjectSettings
from .exceptions import ReconcileError
from .import_mappings import (
    IMPORT_MAPPINGS,
    get_import_command,
    sort_conflicts_for_deletion,
    sort_conflicts_for_import,
)
from .models import (
    Conflict,
    ConflictType,
    OperationResult,
    ResolutionAction,
    ResolutionChoice,
)
from .process import CommandResult, CommandRunner, run_command
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

# (conflict, project) -> True if the resource was deleted
DeleteCallback = Callable[[Conflict, ProjectSettings], Awaitable[bool]]

ALREADY_MANAGED_MARKER = "Resource already managed by Terraform"


@dataclass(frozen=True)
class TerraformCommand:
    """A single terraform state operation for one resource."""

    resource_name: str
    args: Sequence[str]
    timeout: int

    def to_command(self) -> str:
        return " ".join(self.args)


def build_import_command(
    conflict: Conflict, project: ProjectSettings, binary: str = "terraform"
) -> Optional[TerraformCommand]:
    """Build the import for an unmanaged resource, or None for an unmapped kind."""
    mapping = IMPORT_MAPPINGS.get(conflict.resource.kind)
    if mapping is None:
        return None
    return TerraformCommand(
        resource_name=conflict.resource.name,
        args=[
            binary,
            "import",
            mapping.state_address_formatter(conflict.resource),
            mapping.import_id_formatter(conflict.resource, project),
        ],
        timeout=Timeouts.TERRAFORM_IMPORT,
    )


def build_state_rm_command(
    conflict: Conflict, binary: str = "terraform"
) -> Optional[TerraformCommand]:
    """Build the state removal for an orphaned entry, or None without an address."""
    address = conflict.state_address
    if not address:
        mapping = IMPORT_MAPPINGS.get(conflict.resource.kind)
        if mapping is None:
            return None
        address = mapping.state_address_formatter(conflict.resource)
    return TerraformCommand(
        resource_name=conflict.resource.name,
        args=[binary, "state", "rm", address],
        timeout=Timeouts.TERRAFORM_STATE_RM,
    )


def planned_commands(
    conflicts: Sequence[Conflict], project: ProjectSettings, binary: str = "terraform"
) -> List[str]:
    """Commands ``import_all`` would run, in execution order, for dry runs."""
    lines = []
    for conflict in sort_conflicts_for_import(
        c for c in conflicts if c.conflict_type == ConflictType.EXISTS_NOT_IN_STATE
    ):
        lines.append(get_import_command(conflict.resource, project, binary))
    for conflict in conflicts:
        if conflict.conflict_type != ConflictType.ORPHANED_FROM_PREVIOUS:
            continue
        command = build_state_rm_command(conflict, binary)
        if command is not None:
            lines.append(f"{binary} state rm '{command.args[-1]}'")
    return lines


def describe_conflict(conflict: Conflict, project: ProjectSettings) -> List[str]:
    """Detail lines for one conflict, as shown by ``list_details``."""
    resource = conflict.resource
    lines = [f"{resource.kind.label}: {resource.name}"]
    if resource.location:
        lines.append(f"  Location: {resource.location}")
    if resource.created_at:
        lines.append(f"  Created: {resource.created_at}")
    if conflict.conflict_type == ConflictType.EXISTS_NOT_IN_STATE:
        lines.append("  Status: exists in cloud, not in state")
        lines.append(f"  Import: {get_import_command(resource, project)}")
    else:
        lines.append("  Status: in state, missing from cloud")
        lines.append(f"  State address: {conflict.state_address}")
    return lines


class ReconciliationExecutor:
    """Carries out a resolution choice for a batch of conflicts."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        delete_callback: Optional[DeleteCallback] = None,
        terraform_binary: str = "terraform",
    ):
        """Initialize the executor.

        Args:
            runner: Async command runner (defaults to a real subprocess runner)
            delete_callback: Called once per conflict by ``delete_all``
            terraform_binary: Terraform executable name or path
        """
        self.runner: CommandRunner = runner or run_command
        self.delete_callback = delete_callback
        self.terraform_binary = terraform_binary

    async def execute(
        self,
        plan: ResolutionChoice,
        conflicts: Sequence[Conflict],
        project_config: ProjectSettings,
        work_dir: Union[str, Path],
    ) -> OperationResult:
        """Execute ``plan`` against ``conflicts``.

        Args:
            plan: Validated resolution choice from the planner
            conflicts: Conflicts from the classifier
            project_config: Project settings used to build import ids
            work_dir: Terraform working directory holding the state file

        Returns:
            OperationResult with one entry per attempted resource
        """
        conflicts = list(conflicts)
        action = plan.action
        logger.info(f"Executing {action.value} for {len(conflicts)} conflicts")

        if action == ResolutionAction.IMPORT_ALL:
            return await self._import_all(conflicts, project_config, Path(work_dir))
        if action == ResolutionAction.DELETE_ALL:
            return await self._delete_all(conflicts, project_config)
        if action == ResolutionAction.CHANGE_PREFIX:
            return self._change_prefix(plan, project_config)
        if action == ResolutionAction.LIST_DETAILS:
            result = OperationResult(action=action)
            for conflict in conflicts:
                result.details.extend(describe_conflict(conflict, project_config))
            return result

        return OperationResult(action=action, message="Cancelled. No changes made.")

    async def _import_all(
        self, conflicts: List[Conflict], project: ProjectSettings, work_dir: Path
    ) -> OperationResult:
        result = OperationResult(action=ResolutionAction.IMPORT_ALL)
        to_import = sort_conflicts_for_import(
            c for c in conflicts if c.conflict_type == ConflictType.EXISTS_NOT_IN_STATE
        )
        to_prune = [
            c for c in conflicts if c.conflict_type == ConflictType.ORPHANED_FROM_PREVIOUS
        ]

        if not to_import and not to_prune:
            result.message = "Nothing to import."
            return result

        not_ready = self._check_terraform_ready(work_dir)
        if not_ready:
            for conflict in to_import + to_prune:
                result.record_failure(conflict.resource.name, not_ready)
            return result

        try:
            self._backup_terraform_state(work_dir)
        except OSError as e:
            logger.warning(f"Failed to backup Terraform state: {e}")
            result.warnings.append(f"State backup failed: {e}")

        for conflict in to_import:
            command = build_import_command(conflict, project, self.terraform_binary)
            if command is None:
                result.record_failure(
                    conflict.resource.name,
                    f"No import mapping for resource kind {conflict.resource.kind.value}",
                )
                continue
            await self._run_recorded(command, work_dir, result, tolerate_already_managed=True)

        for conflict in to_prune:
            command = build_state_rm_command(conflict, self.terraform_binary)
            if command is None:
                result.record_failure(conflict.resource.name, "No state address to remove")
                continue
            await self._run_recorded(command, work_dir, result)

        logger.info(
            f"Import finished: {len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def _delete_all(
        self, conflicts: List[Conflict], project: ProjectSettings
    ) -> OperationResult:
        result = OperationResult(action=ResolutionAction.DELETE_ALL)

        if self.delete_callback is None:
            message = "No delete handler configured; nothing was deleted."
            result.message = message
            for conflict in conflicts:
                result.record_failure(conflict.resource.name, message)
            return result

        for conflict in sort_conflicts_for_deletion(conflicts):
            name = conflict.resource.name
            try:
                deleted = await self.delete_callback(conflict, project)
            except Exception as e:
                logger.error(f"Failed to delete {conflict.resource}: {e}")
                error = e.message if isinstance(e, ReconcileError) else str(e)
                result.record_failure(name, error or type(e).__name__)
                continue

            if deleted:
                logger.info(f"Deleted {conflict.resource}")
                result.record_success(name)
            else:
                result.record_failure(name, f"Delete of {conflict.resource} reported failure")

        return result

    @staticmethod
    def _change_prefix(plan: ResolutionChoice, project: ProjectSettings) -> OperationResult:
        return OperationResult(
            action=ResolutionAction.CHANGE_PREFIX,
            requires_config_update=True,
            message=(
                f"Update project.name in your stack config from '{project.name}' to "
                f"'{plan.new_prefix}' and deploy again. Resources under the old prefix "
                "are left untouched."
            ),
        )

    async def _run_recorded(
        self,
        command: TerraformCommand,
        work_dir: Path,
        result: OperationResult,
        tolerate_already_managed: bool = False,
    ) -> None:
        """Run one terraform command and record its outcome in ``result``."""
        try:
            outcome = await self.runner(command.args, command.timeout, work_dir)
        except Exception as e:
            outcome = CommandResult(returncode=1, stderr=f"Execution failed: {e}")

        if outcome.ok or (
            tolerate_already_managed and ALREADY_MANAGED_MARKER in outcome.stderr
        ):
            logger.info(f"OK: {command.to_command()}")
            result.record_success(command.resource_name)
        else:
            error = outcome.error_text()
            logger.error(f"Failed: {command.to_command()}: {error}")
            result.record_failure(command.resource_name, error)

    def _check_terraform_ready(self, work_dir: Path) -> Optional[str]:
        """Return why Terraform cannot run in ``work_dir``, or None if it can."""
        if not shutil.which(self.terraform_binary):
            logger.error("Terraform not found in PATH")
            return f"{self.terraform_binary} not found in PATH"

        if not (work_dir / ".terraform").exists():
            logger.error(f"Terraform not initialized in {work_dir}")
            return f"Terraform not initialized in {work_dir}. Run 'terraform init' first."

        return None

    @staticmethod
    def _backup_terraform_state(work_dir: Path) -> Optional[Path]:
        """Copy the state file aside before modifying it.

        Raises:
            OSError: If the copy fails
        """
        state_file = work_dir / "terraform.tfstate"
        if not state_file.exists():
            logger.debug("No state file to backup")
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_file = work_dir / f"terraform.tfstate.backup.{timestamp}"
        shutil.copy2(state_file, backup_file)
        logger.info(f"Backed up Terraform state to {backup_file}")
        return backup_file
