"""Stock delete callbacks for ``delete_all``.

StateRemovalDeleter only forgets the resource in Terraform state and leaves
the cloud untouched. CloudDeleter deletes the resource itself with gcloud and
cannot be undone.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .config.models import ProjectSettings
from .exceptions import ExecutionError
from .executor import build_state_rm_command
from .models import CloudResource, Conflict, ConflictType, ResourceKind
from .process import CommandRunner, run_command
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

DeleteArgsBuilder = Callable[[CloudResource, ProjectSettings], List[str]]


def _compute(collection: str, scope: Optional[str] = None) -> DeleteArgsBuilder:
    def build(resource: CloudResource, project: ProjectSettings) -> List[str]:
        args = ["gcloud", "compute", *collection.split(), "delete", resource.name]
        if scope == "global":
            args.append("--global")
        elif scope == "region":
            args.append(f"--region={resource.location or project.region}")
        return args

    return build


def _regional(*group: str, extra: Optional[List[str]] = None) -> DeleteArgsBuilder:
    def build(resource: CloudResource, project: ProjectSettings) -> List[str]:
        args = ["gcloud", *group, "delete", resource.name]
        args.append(f"--region={resource.location or project.region}")
        return args + list(extra or [])

    return build


DELETE_COMMANDS: Dict[ResourceKind, DeleteArgsBuilder] = {
    ResourceKind.CLOUD_FUNCTION: _regional("functions", extra=["--gen2"]),
    ResourceKind.CLOUD_RUN: _regional("run", "services"),
    ResourceKind.STORAGE_BUCKET: lambda r, p: [
        "gcloud",
        "storage",
        "buckets",
        "delete",
        f"gs://{r.name}",
    ],
    ResourceKind.VPC_NETWORK: _compute("networks"),
    ResourceKind.VPC_CONNECTOR: _compute("networks vpc-access connectors", scope="region"),
    ResourceKind.ARTIFACT_REGISTRY: lambda r, p: [
        "gcloud",
        "artifacts",
        "repositories",
        "delete",
        r.name,
        f"--location={r.location or p.region}",
    ],
    ResourceKind.GLOBAL_ADDRESS: _compute("addresses", scope="global"),
    ResourceKind.URL_MAP: _compute("url-maps", scope="global"),
    ResourceKind.BACKEND_SERVICE: _compute("backend-services", scope="global"),
    ResourceKind.BACKEND_BUCKET: _compute("backend-buckets"),
    ResourceKind.FORWARDING_RULE: _compute("forwarding-rules", scope="global"),
    ResourceKind.TARGET_HTTP_PROXY: _compute("target-http-proxies", scope="global"),
    ResourceKind.TARGET_HTTPS_PROXY: _compute("target-https-proxies", scope="global"),
    ResourceKind.NETWORK_ENDPOINT_GROUP: _compute("network-endpoint-groups", scope="region"),
    ResourceKind.SSL_CERTIFICATE: _compute("ssl-certificates", scope="global"),
}


def build_delete_args(resource: CloudResource, project: ProjectSettings) -> List[str]:
    """Full gcloud delete invocation for ``resource``.

    Raises:
        ExecutionError: If the kind has no delete command
    """
    builder = DELETE_COMMANDS.get(resource.kind)
    if builder is None:
        raise ExecutionError(
            f"No delete command for resource kind {resource.kind.value}",
            resource_name=resource.name,
        )
    return builder(resource, project) + [f"--project={project.gcp_project_id}", "--quiet"]


class StateRemovalDeleter:
    """Removes a conflict's entry from Terraform state without touching the cloud."""

    def __init__(
        self,
        work_dir: Union[str, Path],
        runner: Optional[CommandRunner] = None,
        terraform_binary: str = "terraform",
    ):
        self.work_dir = Path(work_dir)
        self.runner: CommandRunner = runner or run_command
        self.terraform_binary = terraform_binary

    async def __call__(self, conflict: Conflict, project: ProjectSettings) -> bool:
        if not conflict.in_state:
            raise ExecutionError(
                "Resource is not in state; use cloud delete mode to remove it",
                resource_name=conflict.resource.name,
            )

        command = build_state_rm_command(conflict, self.terraform_binary)
        if command is None:
            raise ExecutionError(
                "No state address to remove", resource_name=conflict.resource.name
            )

        outcome = await self.runner(command.args, command.timeout, self.work_dir)
        if not outcome.ok:
            raise ExecutionError(outcome.error_text(), resource_name=conflict.resource.name)
        return True


class CloudDeleter:
    """Deletes a conflict's cloud resource with gcloud.

    Orphaned entries are already gone from the cloud, so they are removed
    from Terraform state in ``work_dir`` instead. Without a ``work_dir`` they
    are reported as failures.
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        timeout: Optional[int] = None,
        work_dir: Optional[Union[str, Path]] = None,
        terraform_binary: str = "terraform",
    ):
        self.runner: CommandRunner = runner or run_command
        self.timeout = timeout if timeout is not None else Timeouts.CLOUD_DELETE
        self.state_remover = (
            StateRemovalDeleter(work_dir, self.runner, terraform_binary)
            if work_dir is not None
            else None
        )

    async def __call__(self, conflict: Conflict, project: ProjectSettings) -> bool:
        if conflict.conflict_type == ConflictType.ORPHANED_FROM_PREVIOUS:
            if self.state_remover is None:
                raise ExecutionError(
                    "Resource is not in the cloud and no terraform directory is set "
                    "to remove its state entry",
                    resource_name=conflict.resource.name,
                )
            logger.info(f"{conflict.resource} is not in the cloud, removing its state entry")
            return await self.state_remover(conflict, project)

        args = build_delete_args(conflict.resource, project)
        logger.warning(f"Deleting cloud resource {conflict.resource}")
        outcome = await self.runner(args, self.timeout, None)
        if outcome.ok:
            return True

        if "not found" in outcome.stderr.lower():
            logger.info(f"{conflict.resource} already deleted")
            return True
        raise ExecutionError(outcome.error_text(), resource_name=conflict.resource.name)
