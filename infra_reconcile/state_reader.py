"""Terraform state file reader.

The engine never writes state; it only reads the ``terraform.tfstate`` file
that CDKTF/Terraform produced and extracts the managed resource instances.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config.loader import STACK_DIR
from .exceptions import StateFileError
from .models import StateEntry

logger = logging.getLogger(__name__)

STATE_FILE_CANDIDATES = (
    f"{STACK_DIR}/cdktf/cdktf.out/stacks/main/terraform.tfstate",
    f"{STACK_DIR}/terraform-state/terraform.tfstate",
)


@dataclass
class TerraformState:
    """Managed resources recorded in a state file."""

    entries: List[StateEntry] = field(default_factory=list)
    version: Optional[int] = None
    serial: Optional[int] = None

    def __len__(self) -> int:
        return len(self.entries)

    def addresses(self) -> List[str]:
        return [entry.address for entry in self.entries]


class StateStatus(str, Enum):
    ABSENT = "absent"
    MALFORMED = "malformed"
    EMPTY = "empty"
    LOADED = "loaded"


@dataclass
class StateReadResult:
    """Outcome of locating and reading the state file for a project."""

    status: StateStatus
    path: Optional[Path] = None
    state: TerraformState = field(default_factory=TerraformState)
    error: Optional[str] = None

    @property
    def entries(self) -> List[StateEntry]:
        return self.state.entries

    @property
    def warning(self) -> Optional[str]:
        """Warning to surface to the operator, only for a malformed file."""
        if self.status == StateStatus.MALFORMED:
            return f"State file {self.path} is malformed, treating it as empty: {self.error}"
        return None


def locate_state_file(cwd: Union[str, Path]) -> Optional[Path]:
    """Return the first existing state file under ``cwd``, or None."""
    base = Path(cwd)
    for candidate in STATE_FILE_CANDIDATES:
        path = base / candidate
        if path.is_file():
            return path
    return None


def _instance_address(resource: Dict[str, Any], instance: Dict[str, Any]) -> str:
    address = f"{resource['type']}.{resource['name']}"
    module = resource.get("module")
    if module:
        address = f"{module}.{address}"
    if "index_key" in instance:
        key = instance["index_key"]
        address += f"[{key}]" if isinstance(key, int) else f'["{key}"]'
    return address


def _read_content(path: Path) -> str:
    """Read the raw state text.

    Raises:
        StateFileError: If the file is not valid UTF-8
    """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise StateFileError(f"Not valid UTF-8: {e}", state_path=str(path), cause=e) from e


def _expect(value: Any, expected: type, what: str, path: Path) -> None:
    if not isinstance(value, expected):
        raise StateFileError(
            f"Expected {what} to be a {expected.__name__}, got {type(value).__name__}",
            state_path=str(path),
        )


def _parse_content(content: str, path: Path) -> TerraformState:
    """Parse state text.

    Raises:
        StateFileError: If the content is not a well-formed state document
    """
    if not content.strip():
        return TerraformState()

    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        raise StateFileError(f"Invalid JSON: {e}", state_path=str(path), cause=e) from e

    _expect(raw, dict, "the top level", path)
    resources = raw.get("resources")
    if resources is None:
        resources = []
    _expect(resources, list, "'resources'", path)

    state = TerraformState(version=raw.get("version"), serial=raw.get("serial"))
    for resource in resources:
        if not isinstance(resource, dict) or resource.get("mode") != "managed":
            continue
        if not resource.get("type") or not resource.get("name"):
            continue
        instances = resource.get("instances")
        if instances is None:
            instances = []
        _expect(instances, list, f"'instances' of {resource['type']}.{resource['name']}", path)
        for instance in instances:
            if not isinstance(instance, dict):
                continue
            attributes = instance.get("attributes")
            if attributes is None:
                attributes = {}
            _expect(
                attributes, dict, f"'attributes' of {resource['type']}.{resource['name']}", path
            )
            state.entries.append(
                StateEntry(
                    address=_instance_address(resource, instance),
                    kind=resource["type"],
                    name=resource["name"],
                    attributes=attributes,
                )
            )
    return state


def _load_state(path: Path) -> TerraformState:
    """Read and parse a state file.

    Raises:
        StateFileError: If the file is not UTF-8 or not a state document
    """
    return _parse_content(_read_content(path), path)


def parse_state(path: Union[str, Path]) -> Optional[TerraformState]:
    """Parse the state file at ``path``.

    Returns None when the file is absent or malformed. An empty file yields
    an empty TerraformState.
    """
    state_path = Path(path)
    if not state_path.is_file():
        return None
    try:
        return _load_state(state_path)
    except StateFileError as e:
        logger.warning(f"Could not parse state file {state_path}: {e.message}")
        return None
    except OSError as e:
        logger.warning(f"Could not read state file {state_path}: {e}")
        return None


def read_state(cwd: Union[str, Path]) -> StateReadResult:
    """Locate and read the state file for the project rooted at ``cwd``."""
    path = locate_state_file(cwd)
    if path is None:
        logger.debug(f"No state file found under {cwd}")
        return StateReadResult(status=StateStatus.ABSENT)

    try:
        content = _read_content(path)
        state = _parse_content(content, path)
    except StateFileError as e:
        logger.warning(f"State file {path} is malformed: {e.message}")
        return StateReadResult(status=StateStatus.MALFORMED, path=path, error=e.message)
    except OSError as e:
        logger.warning(f"Could not read state file {path}: {e}")
        return StateReadResult(status=StateStatus.MALFORMED, path=path, error=str(e))

    if not content.strip():
        return StateReadResult(status=StateStatus.EMPTY, path=path, state=state)

    logger.info(f"Loaded {len(state)} managed resources from {path}")
    return StateReadResult(status=StateStatus.LOADED, path=path, state=state)
