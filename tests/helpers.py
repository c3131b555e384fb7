"""Shared test doubles and builders."""

from typing import Any, Dict, List, Optional

from infra_reconcile.models import CloudResource, Conflict, ConflictType, ResourceKind
from infra_reconcile.process import CommandResult

CDKTF_STATE_PATH = ".stack/cdktf/cdktf.out/stacks/main/terraform.tfstate"
LEGACY_STATE_PATH = ".stack/terraform-state/terraform.tfstate"


class FakeRunner:
    """Stands in for gcloud/terraform.

    ``responses`` maps a substring of the joined command line to the
    CommandResult (or exception) to return for it; anything else gets
    ``default``.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        default: Optional[CommandResult] = None,
    ):
        self.responses = responses or {}
        self.default = default or CommandResult(returncode=0, stdout="[]")
        self.calls: List[List[str]] = []
        self.cwds: List[Any] = []

    async def __call__(self, args, timeout, cwd=None):
        self.calls.append(list(args))
        self.cwds.append(cwd)
        joined = " ".join(args)
        for key, response in self.responses.items():
            if key in joined:
                if isinstance(response, BaseException):
                    raise response
                return response
        return self.default

    def joined_calls(self) -> List[str]:
        return [" ".join(call) for call in self.calls]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout)


def failed(stderr: str = "Error: failed") -> CommandResult:
    return CommandResult(returncode=1, stderr=stderr)


def conflict_for(
    kind: ResourceKind,
    name: str,
    conflict_type: ConflictType = ConflictType.EXISTS_NOT_IN_STATE,
    location: Optional[str] = None,
    state_address: Optional[str] = None,
) -> Conflict:
    return Conflict(
        resource=CloudResource(kind=kind, name=name, location=location),
        in_state=conflict_type == ConflictType.ORPHANED_FROM_PREVIOUS,
        expected_name=name,
        conflict_type=conflict_type,
        state_address=state_address,
    )


def state_document(resources: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"version": 4, "serial": 1, "resources": resources}


def managed_resource(
    tf_type: str, label: str, name: Optional[str] = None, **attrs: Any
) -> Dict[str, Any]:
    attributes = dict(attrs)
    if name is not None:
        attributes["name"] = name
    return {
        "mode": "managed",
        "type": tf_type,
        "name": label,
        "instances": [{"attributes": attributes}],
    }
