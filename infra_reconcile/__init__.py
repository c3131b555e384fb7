"""Drift reconciliation between Terraform state and a Google Cloud project."""

from .classifier import ClassificationResult, ConflictClassifier, MatchStrategy
from .exceptions import (
    ConfigError,
    ExecutionError,
    InvalidResolutionError,
    ReconcileError,
    ReconcileStateError,
    ScanError,
    StateFileError,
)
from .executor import ReconciliationExecutor
from .models import (
    CloudResource,
    Conflict,
    ConflictType,
    OperationResult,
    ResolutionAction,
    ResolutionChoice,
    ResourceKind,
    ScanResult,
    StateEntry,
)
from .planner import ResolutionPlanner
from .reconciler import ReconcileStage, Reconciler
from .scanner import ResourceScanner
from .state_reader import locate_state_file, parse_state, read_state

__version__ = "0.1.0"

__all__ = [
    "ClassificationResult",
    "CloudResource",
    "ConfigError",
    "Conflict",
    "ConflictClassifier",
    "ConflictType",
    "ExecutionError",
    "InvalidResolutionError",
    "MatchStrategy",
    "OperationResult",
    "ReconcileError",
    "ReconcileStage",
    "ReconcileStateError",
    "Reconciler",
    "ReconciliationExecutor",
    "ResolutionAction",
    "ResolutionChoice",
    "ResolutionPlanner",
    "ResourceKind",
    "ResourceScanner",
    "ScanError",
    "ScanResult",
    "StateEntry",
    "StateFileError",
    "locate_state_file",
    "parse_state",
    "read_state",
]
