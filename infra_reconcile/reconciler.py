"""End-to-end reconciliation workflow.

A run moves through SCANNED -> CLASSIFIED -> PLAN_CHOSEN -> EXECUTING ->
REPORTED. A run with no conflicts stops at CLASSIFIED.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

import structlog

from .classifier import ClassificationResult, ConflictClassifier
from .config.models import ProjectSettings
from .exceptions import ReconcileStateError
from .executor import ReconciliationExecutor
from .models import OperationResult, ResolutionChoice, ScanResult
from .planner import ResolutionPlanner
from .scanner import ResourceScanner
from .state_reader import STATE_FILE_CANDIDATES, StateReadResult, read_state

logger = structlog.get_logger(__name__)


class ReconcileStage(str, Enum):
    SCANNED = "scanned"
    CLASSIFIED = "classified"
    PLAN_CHOSEN = "plan_chosen"
    EXECUTING = "executing"
    REPORTED = "reported"


_TRANSITIONS: Dict[Optional[ReconcileStage], Set[ReconcileStage]] = {
    None: {ReconcileStage.SCANNED},
    ReconcileStage.SCANNED: {ReconcileStage.CLASSIFIED},
    ReconcileStage.CLASSIFIED: {ReconcileStage.PLAN_CHOSEN},
    ReconcileStage.PLAN_CHOSEN: {ReconcileStage.EXECUTING},
    ReconcileStage.EXECUTING: {ReconcileStage.REPORTED},
    ReconcileStage.REPORTED: set(),
}


@dataclass
class ReconciliationRun:
    """Everything gathered and decided during one reconciliation run."""

    stage: Optional[ReconcileStage] = None
    scan: Optional[ScanResult] = None
    state: Optional[StateReadResult] = None
    classification: Optional[ClassificationResult] = None
    choice: Optional[ResolutionChoice] = None
    result: Optional[OperationResult] = None
    warnings: List[str] = field(default_factory=list)

    def advance(self, target: ReconcileStage) -> None:
        """Move to ``target``.

        Raises:
            ReconcileStateError: If ``target`` does not follow the current stage
        """
        if target not in _TRANSITIONS[self.stage]:
            current = self.stage.value if self.stage else "start"
            raise ReconcileStateError(
                f"Cannot move from {current} to {target.value}",
                current_stage=current,
                target_stage=target.value,
            )
        self.stage = target

    @property
    def conflicts(self):
        return self.classification.conflicts if self.classification else []

    @property
    def needs_resolution(self) -> bool:
        return self.stage == ReconcileStage.CLASSIFIED and bool(self.conflicts)


class Reconciler:
    """Drives scanner, classifier, planner and executor for one project."""

    def __init__(
        self,
        project: ProjectSettings,
        project_dir: Union[str, Path],
        scanner: Optional[ResourceScanner] = None,
        classifier: Optional[ConflictClassifier] = None,
        planner: Optional[ResolutionPlanner] = None,
        executor: Optional[ReconciliationExecutor] = None,
    ):
        self.project = project
        self.project_dir = Path(project_dir)
        self.scanner = scanner or ResourceScanner()
        self.classifier = classifier or ConflictClassifier()
        self.planner = planner or ResolutionPlanner(
            project_name=project.name, gcp_project_id=project.gcp_project_id
        )
        self.executor = executor or ReconciliationExecutor()

    def work_dir(self, run: Optional[ReconciliationRun] = None) -> Path:
        """Terraform working directory: where the state file lives."""
        if run is not None and run.state is not None and run.state.path is not None:
            return run.state.path.parent
        return (self.project_dir / STATE_FILE_CANDIDATES[0]).parent

    async def detect(self) -> ReconciliationRun:
        """Scan the cloud, read state and classify the differences."""
        run = ReconciliationRun()

        run.scan = await self.scanner.scan(
            self.project.gcp_project_id, self.project.region, self.project.name
        )
        run.state = read_state(self.project_dir)
        run.advance(ReconcileStage.SCANNED)
        run.warnings.extend(run.scan.errors)
        if run.state.warning:
            run.warnings.append(run.state.warning)

        run.classification = self.classifier.classify(run.scan, run.state)
        run.advance(ReconcileStage.CLASSIFIED)

        logger.info(
            "reconcile.classified",
            project=self.project.name,
            state_status=run.state.status.value,
            resources=len(run.scan.resources),
            conflicts=len(run.conflicts),
            warnings=len(run.warnings),
        )
        return run

    def choose(self, run: ReconciliationRun, choice: ResolutionChoice) -> ResolutionChoice:
        """Validate the operator's choice and record it on the run.

        Raises:
            InvalidResolutionError: If the choice is rejected; the run stays at CLASSIFIED
        """
        if run.stage != ReconcileStage.CLASSIFIED:
            current = run.stage.value if run.stage else "start"
            raise ReconcileStateError(
                f"Cannot choose a resolution at stage {current}",
                current_stage=current,
                target_stage=ReconcileStage.PLAN_CHOSEN.value,
            )
        resolved = self.planner.plan(run.conflicts, choice)
        run.choice = resolved
        run.advance(ReconcileStage.PLAN_CHOSEN)
        logger.info("reconcile.plan_chosen", action=resolved.action.value)
        return resolved

    async def execute(self, run: ReconciliationRun) -> OperationResult:
        """Execute the chosen resolution and report the outcome."""
        run.advance(ReconcileStage.EXECUTING)
        run.result = await self.executor.execute(
            run.choice, run.conflicts, self.project, self.work_dir(run)
        )
        run.advance(ReconcileStage.REPORTED)

        logger.info(
            "reconcile.reported",
            action=run.result.action.value,
            succeeded=len(run.result.succeeded),
            failed=len(run.result.failed),
        )
        return run.result

    async def reconcile(self, choice: Optional[ResolutionChoice] = None) -> ReconciliationRun:
        """Run the whole workflow non-interactively."""
        run = await self.detect()
        if not run.conflicts:
            return run
        self.choose(run, choice or self.planner.default_choice())
        await self.execute(run)
        return run
