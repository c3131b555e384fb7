"""Cloud resource scanner.

Queries the Google Cloud project for every tracked resource kind, keeps the
resources whose names follow the project naming convention and returns them
as a uniform list. Each kind is an independent query: a failure or timeout in
one kind degrades that kind to zero resources and a warning, never the whole
scan.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .exceptions import ScanError
from .models import CloudResource, ResourceKind, ScanResult
from .naming import matches_project_pattern
from .process import CommandRunner, run_command
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

_LOCATION_IN_PATH = re.compile(r"locations/([^/]+)")


@dataclass(frozen=True)
class ScanOptions:
    """Scope of one scan."""

    project_id: str
    region: str
    project_name: str


RecordMapper = Callable[[Dict[str, Any], ScanOptions], Optional[CloudResource]]
CommandBuilder = Callable[[ScanOptions], List[str]]


@dataclass(frozen=True)
class KindQuery:
    """How to list and interpret one resource kind."""

    kind: ResourceKind
    label: str
    build_command: CommandBuilder
    mapper: RecordMapper


def _last_segment(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.rstrip("/").split("/")[-1]


def _record_mapper(kind: ResourceKind, regional: bool = False) -> RecordMapper:
    """Build a mapper for the common gcloud JSON record shapes.

    Handles plain ``name`` fields, full resource paths
    (``projects/p/locations/l/functions/f``) and Knative style ``metadata``
    blocks. ``regional`` kinds fall back to the scan region when the record
    carries no location of its own.
    """

    def mapper(record: Dict[str, Any], options: ScanOptions) -> Optional[CloudResource]:
        metadata = record.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        full_name = metadata.get("name") or record.get("name") or ""
        name = _last_segment(full_name)
        if not name:
            logger.debug(f"Skipping {kind.value} record without a usable name")
            return None

        location = None
        path_match = _LOCATION_IN_PATH.search(full_name)
        if path_match:
            location = path_match.group(1)
        elif record.get("region") or record.get("zone"):
            location = _last_segment(record.get("region") or record.get("zone")) or None
        elif isinstance(record.get("location"), str) and record["location"]:
            location = record["location"].lower()
        elif (metadata.get("labels") or {}).get("cloud.googleapis.com/location"):
            location = metadata["labels"]["cloud.googleapis.com/location"]
        elif regional:
            location = options.region

        created_at = (
            record.get("createTime")
            or record.get("creationTimestamp")
            or record.get("timeCreated")
            or metadata.get("creationTimestamp")
        )
        external_ref = record.get("selfLink") or (
            full_name if "/" in full_name else None
        )

        return CloudResource(
            kind=kind,
            name=name,
            location=location,
            external_ref=external_ref,
            created_at=created_at,
        )

    return mapper


def _gcloud(*args: str) -> CommandBuilder:
    def build(options: ScanOptions) -> List[str]:
        rendered = [arg.format(region=options.region) for arg in args]
        return ["gcloud", *rendered, f"--project={options.project_id}", "--format=json"]

    return build


DEFAULT_QUERIES: List[KindQuery] = [
    KindQuery(
        ResourceKind.CLOUD_FUNCTION,
        "Cloud Functions",
        _gcloud("functions", "list", "--gen2"),
        _record_mapper(ResourceKind.CLOUD_FUNCTION, regional=True),
    ),
    KindQuery(
        ResourceKind.CLOUD_RUN,
        "Cloud Run",
        _gcloud("run", "services", "list"),
        _record_mapper(ResourceKind.CLOUD_RUN, regional=True),
    ),
    KindQuery(
        ResourceKind.STORAGE_BUCKET,
        "Storage Buckets",
        _gcloud("storage", "buckets", "list"),
        _record_mapper(ResourceKind.STORAGE_BUCKET),
    ),
    KindQuery(
        ResourceKind.VPC_NETWORK,
        "VPC Networks",
        _gcloud("compute", "networks", "list"),
        _record_mapper(ResourceKind.VPC_NETWORK),
    ),
    KindQuery(
        ResourceKind.VPC_CONNECTOR,
        "VPC Connectors",
        _gcloud("compute", "networks", "vpc-access", "connectors", "list", "--region={region}"),
        _record_mapper(ResourceKind.VPC_CONNECTOR, regional=True),
    ),
    KindQuery(
        ResourceKind.ARTIFACT_REGISTRY,
        "Artifact Registries",
        _gcloud("artifacts", "repositories", "list"),
        _record_mapper(ResourceKind.ARTIFACT_REGISTRY, regional=True),
    ),
    KindQuery(
        ResourceKind.GLOBAL_ADDRESS,
        "Global Addresses",
        _gcloud("compute", "addresses", "list", "--global"),
        _record_mapper(ResourceKind.GLOBAL_ADDRESS),
    ),
    KindQuery(
        ResourceKind.URL_MAP,
        "URL Maps",
        _gcloud("compute", "url-maps", "list"),
        _record_mapper(ResourceKind.URL_MAP),
    ),
    KindQuery(
        ResourceKind.BACKEND_SERVICE,
        "Backend Services",
        _gcloud("compute", "backend-services", "list", "--global"),
        _record_mapper(ResourceKind.BACKEND_SERVICE),
    ),
    KindQuery(
        ResourceKind.BACKEND_BUCKET,
        "Backend Buckets",
        _gcloud("compute", "backend-buckets", "list"),
        _record_mapper(ResourceKind.BACKEND_BUCKET),
    ),
    KindQuery(
        ResourceKind.FORWARDING_RULE,
        "Forwarding Rules",
        _gcloud("compute", "forwarding-rules", "list", "--global"),
        _record_mapper(ResourceKind.FORWARDING_RULE),
    ),
    KindQuery(
        ResourceKind.TARGET_HTTP_PROXY,
        "Target HTTP Proxies",
        _gcloud("compute", "target-http-proxies", "list"),
        _record_mapper(ResourceKind.TARGET_HTTP_PROXY),
    ),
    KindQuery(
        ResourceKind.TARGET_HTTPS_PROXY,
        "Target HTTPS Proxies",
        _gcloud("compute", "target-https-proxies", "list"),
        _record_mapper(ResourceKind.TARGET_HTTPS_PROXY),
    ),
    KindQuery(
        ResourceKind.NETWORK_ENDPOINT_GROUP,
        "Network Endpoint Groups",
        _gcloud("compute", "network-endpoint-groups", "list"),
        _record_mapper(ResourceKind.NETWORK_ENDPOINT_GROUP),
    ),
    KindQuery(
        ResourceKind.SSL_CERTIFICATE,
        "SSL Certificates",
        _gcloud("compute", "ssl-certificates", "list"),
        _record_mapper(ResourceKind.SSL_CERTIFICATE),
    ),
]


def parse_list_output(stdout: str) -> List[Dict[str, Any]]:
    """Parse ``--format=json`` list output into records.

    Raises:
        ScanError: If the output is not a JSON list
    """
    trimmed = stdout.strip()
    if not trimmed or trimmed == "[]":
        return []
    try:
        records = json.loads(trimmed)
    except json.JSONDecodeError as e:
        raise ScanError(f"Invalid JSON output: {e}", cause=e) from e
    if not isinstance(records, list):
        raise ScanError(f"Expected a JSON list, got {type(records).__name__}")
    return [r for r in records if isinstance(r, dict)]


class ResourceScanner:
    """Scans a cloud project for resources belonging to a stack project."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        queries: Optional[Sequence[KindQuery]] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the scanner.

        Args:
            runner: Async command runner (defaults to a real subprocess runner)
            queries: Kind queries to run (defaults to every tracked kind)
            timeout: Per-query timeout in seconds (defaults to Timeouts.SCAN_QUERY)
        """
        self.runner: CommandRunner = runner or run_command
        self.queries: List[KindQuery] = list(queries or DEFAULT_QUERIES)
        self.timeout = timeout if timeout is not None else Timeouts.SCAN_QUERY

    async def scan(self, project_id: str, region: str, project_name: str) -> ScanResult:
        """Scan every registered kind concurrently.

        Args:
            project_id: Google Cloud project ID
            region: Default region for regional kinds
            project_name: Stack project name used as resource prefix

        Returns:
            ScanResult with matching resources and one error entry per failed kind
        """
        options = ScanOptions(project_id=project_id, region=region, project_name=project_name)
        logger.info(
            f"Scanning {len(self.queries)} resource kinds in project {project_id} "
            f"for '{project_name}' resources"
        )

        outcomes = await asyncio.gather(
            *(self._run_query(query, options) for query in self.queries),
            return_exceptions=True,
        )

        result = ScanResult()
        for query, outcome in zip(self.queries, outcomes):
            if isinstance(outcome, BaseException):
                reason = outcome.message if isinstance(outcome, ScanError) else str(outcome)
                logger.warning(f"Scan of {query.label} failed: {reason}")
                result.errors.append(f"{query.label}: {reason}")
                result.failed_kinds.append(query.kind)
            else:
                result.resources.extend(outcome)

        logger.info(
            f"Scan complete: {len(result.resources)} matching resources, "
            f"{len(result.errors)} kind errors"
        )
        return result

    async def _run_query(self, query: KindQuery, options: ScanOptions) -> List[CloudResource]:
        """List one kind and map the matching records."""
        command = query.build_command(options)
        try:
            outcome = await asyncio.wait_for(
                self.runner(command, self.timeout, None), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ScanError(
                f"Query timed out after {self.timeout}s", resource_kind=query.kind.value
            ) from e

        if not outcome.ok:
            raise ScanError(outcome.error_text(), resource_kind=query.kind.value)

        resources = []
        for record in parse_list_output(outcome.stdout):
            if not isinstance(record, dict):
                continue
            resource = query.mapper(record, options)
            if resource is None:
                continue
            if matches_project_pattern(resource.name, options.project_name, options.project_id):
                resources.append(resource)

        logger.debug(f"{query.label}: {len(resources)} matching resources")
        return resources
