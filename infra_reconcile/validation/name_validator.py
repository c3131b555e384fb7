"""Name validation for declared resources.

This module validates the resource names in a project config against:
1. Per-kind length and character rules
2. A fixed list of reserved names
3. Kind-specific rules (bucket prefixes, short global names)
4. Duplicate names within a naming scope
5. Functions and containers that would share one Cloud Run service name

No cloud calls are made; validation runs before anything is deployed.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from ..config.models import ProjectSettings

logger = logging.getLogger(__name__)


class DeclaredKind(str, Enum):
    BUCKET = "bucket"
    SECRET = "secret"
    TOPIC = "topic"
    QUEUE = "queue"
    CRON = "cron"
    NETWORK = "network"
    CONTAINER = "container"
    FUNCTION = "function"
    DATABASE = "database"
    CACHE = "cache"
    UI = "ui"


# Kinds whose names must be unique across the whole project
GLOBAL_KINDS = {
    DeclaredKind.BUCKET,
    DeclaredKind.SECRET,
    DeclaredKind.TOPIC,
    DeclaredKind.QUEUE,
    DeclaredKind.CRON,
    DeclaredKind.NETWORK,
}

# Kinds whose names share one scope per network
NETWORK_KINDS = {
    DeclaredKind.CONTAINER,
    DeclaredKind.FUNCTION,
    DeclaredKind.DATABASE,
    DeclaredKind.CACHE,
    DeclaredKind.UI,
}

# Both deploy as a Cloud Run service named after the resource
CLOUD_RUN_KINDS = {DeclaredKind.FUNCTION, DeclaredKind.CONTAINER}


@dataclass(frozen=True)
class NamingRule:
    min_length: int
    max_length: int
    pattern: Pattern[str]
    description: str


_COMPUTE_RULE = NamingRule(
    min_length=1,
    max_length=63,
    pattern=re.compile(r"^[a-z][a-z0-9-]*$"),
    description="1-63 lowercase letters, numbers and hyphens, starting with a letter",
)

NAMING_RULES: Dict[DeclaredKind, NamingRule] = {
    DeclaredKind.BUCKET: NamingRule(
        min_length=3,
        max_length=63,
        pattern=re.compile(r"^[a-z0-9][a-z0-9._-]*[a-z0-9]$"),
        description="3-63 lowercase letters, numbers, dots, underscores and hyphens",
    ),
    DeclaredKind.SECRET: NamingRule(
        min_length=1,
        max_length=255,
        pattern=re.compile(r"^[a-zA-Z0-9_-]+$"),
        description="1-255 letters, numbers, underscores and hyphens",
    ),
    DeclaredKind.TOPIC: NamingRule(
        min_length=3,
        max_length=255,
        pattern=re.compile(r"^[a-zA-Z][a-zA-Z0-9._~%+-]*$"),
        description="3-255 characters, starting with a letter",
    ),
    DeclaredKind.QUEUE: NamingRule(
        min_length=1,
        max_length=100,
        pattern=re.compile(r"^[a-zA-Z0-9-]+$"),
        description="1-100 letters, numbers and hyphens",
    ),
    DeclaredKind.CRON: NamingRule(
        min_length=1,
        max_length=500,
        pattern=re.compile(r"^[a-zA-Z0-9_-]+$"),
        description="1-500 letters, numbers, underscores and hyphens",
    ),
    DeclaredKind.NETWORK: _COMPUTE_RULE,
    DeclaredKind.CONTAINER: _COMPUTE_RULE,
    DeclaredKind.FUNCTION: _COMPUTE_RULE,
    DeclaredKind.DATABASE: _COMPUTE_RULE,
    DeclaredKind.CACHE: _COMPUTE_RULE,
    DeclaredKind.UI: _COMPUTE_RULE,
}

RESERVED_NAMES = frozenset(
    {
        "default",
        "google",
        "goog",
        "gcp",
        "gcloud",
        "localhost",
        "null",
        "none",
        "undefined",
    }
)

NEAR_LIMIT_LENGTH = 50
SHORT_GLOBAL_NAME_LENGTH = 8


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class DeclaredResource:
    """A resource declared in the project config.

    Attributes:
        kind: Declared resource kind
        name: Declared name, before any project prefix is applied
        network: Owning network for network-scoped kinds
        path: Location of the declaration in the config, for reporting
    """

    kind: DeclaredKind
    name: str
    network: Optional[str] = None
    path: str = ""


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    severity: IssueSeverity
    resource: DeclaredResource
    message: str

    def __str__(self) -> str:
        where = f" at {self.resource.path}" if self.resource.path else ""
        return f"{self.resource.kind.value} '{self.resource.name}'{where}: {self.message}"


@dataclass
class NameValidationReport:
    """Result of validating a set of declared resources.

    Attributes:
        errors: Issues that block deployment
        warnings: Informational issues
        resources_checked: Number of declared resources validated
    """

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    resources_checked: int = 0

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0

    def add(self, issue: ValidationIssue) -> None:
        if issue.severity == IssueSeverity.ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def codes(self) -> List[str]:
        return [issue.code for issue in self.errors + self.warnings]

    def format_report(self) -> str:
        """Generate human-readable validation report."""
        lines = [
            "=" * 60,
            "Name Validation Report",
            "=" * 60,
            f"Resources checked: {self.resources_checked}",
            f"Errors: {len(self.errors)}",
            f"Warnings: {len(self.warnings)}",
        ]
        if self.errors:
            lines.append("\nERRORS:")
            for issue in self.errors:
                lines.append(f"  [{issue.code}] {issue}")
        if self.warnings:
            lines.append("\nWARNINGS:")
            for issue in self.warnings:
                lines.append(f"  [{issue.code}] {issue}")
        lines.append("")
        lines.append("Result: " + ("VALID" if self.valid else "INVALID"))
        return "\n".join(lines)


def declared_resources_from_config(project: ProjectSettings) -> List[DeclaredResource]:
    """Flatten a project config into declared resources, in config order."""
    declared: List[DeclaredResource] = []

    global_sections = (
        (DeclaredKind.BUCKET, "buckets", project.buckets),
        (DeclaredKind.SECRET, "secrets", project.secrets),
        (DeclaredKind.TOPIC, "topics", project.topics),
        (DeclaredKind.QUEUE, "queues", project.queues),
        (DeclaredKind.CRON, "crons", project.crons),
    )
    for kind, section, items in global_sections:
        for i, item in enumerate(items):
            declared.append(
                DeclaredResource(kind=kind, name=item.name, path=f"project.{section}[{i}]")
            )

    for n, network in enumerate(project.networks):
        net_path = f"project.networks[{n}]"
        declared.append(
            DeclaredResource(kind=DeclaredKind.NETWORK, name=network.name, path=net_path)
        )
        network_sections = (
            (DeclaredKind.CONTAINER, "containers", network.containers),
            (DeclaredKind.FUNCTION, "functions", network.functions),
            (DeclaredKind.DATABASE, "databases", network.databases),
            (DeclaredKind.CACHE, "caches", network.caches),
            (DeclaredKind.UI, "uis", network.uis),
        )
        for kind, section, items in network_sections:
            for i, item in enumerate(items):
                declared.append(
                    DeclaredResource(
                        kind=kind,
                        name=item.name,
                        network=network.name,
                        path=f"{net_path}.{section}[{i}]",
                    )
                )

    return declared


class NamingValidator:
    """Validates declared resource names before deployment."""

    def __init__(
        self,
        rules: Optional[Dict[DeclaredKind, NamingRule]] = None,
        reserved_names: Iterable[str] = RESERVED_NAMES,
    ):
        self.rules = dict(rules or NAMING_RULES)
        self.reserved_names = {name.lower() for name in reserved_names}

    def validate(self, declared: Iterable[DeclaredResource]) -> NameValidationReport:
        """Validate every declared resource and the scopes they share.

        Args:
            declared: Declared resources, typically from declared_resources_from_config

        Returns:
            NameValidationReport; ``valid`` is True iff no errors were found
        """
        resources = list(declared)
        report = NameValidationReport(resources_checked=len(resources))

        for resource in resources:
            for issue in self._check_resource(resource):
                report.add(issue)

        for issue in self._check_scopes(resources):
            report.add(issue)

        logger.info(
            f"Validated {len(resources)} declared resources: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    def _check_resource(self, resource: DeclaredResource) -> List[ValidationIssue]:
        """Run the per-resource checks in order, stopping at the first syntactic error."""
        rule = self.rules.get(resource.kind, _COMPUTE_RULE)
        name = resource.name

        if not rule.min_length <= len(name) <= rule.max_length:
            return [
                ValidationIssue(
                    code="length_exceeded",
                    severity=IssueSeverity.ERROR,
                    resource=resource,
                    message=(
                        f"length {len(name)} is outside "
                        f"{rule.min_length}-{rule.max_length} characters"
                    ),
                )
            ]

        if not rule.pattern.match(name):
            return [
                ValidationIssue(
                    code="invalid_characters",
                    severity=IssueSeverity.ERROR,
                    resource=resource,
                    message=f"must be {rule.description}",
                )
            ]

        if name.lower() in self.reserved_names:
            return [
                ValidationIssue(
                    code="reserved_name",
                    severity=IssueSeverity.ERROR,
                    resource=resource,
                    message=f"'{name}' is a reserved name",
                )
            ]

        issues: List[ValidationIssue] = []
        if resource.kind == DeclaredKind.BUCKET:
            issues.extend(self._check_bucket(resource))

        if len(name) > NEAR_LIMIT_LENGTH:
            issues.append(
                ValidationIssue(
                    code="name_near_limit",
                    severity=IssueSeverity.WARNING,
                    resource=resource,
                    message=(
                        f"{len(name)} characters leaves little room for the project "
                        f"prefix within {rule.max_length}"
                    ),
                )
            )
        return issues

    @staticmethod
    def _check_bucket(resource: DeclaredResource) -> List[ValidationIssue]:
        name = resource.name.lower()
        if name.startswith("goog") or "google" in name:
            return [
                ValidationIssue(
                    code="reserved_prefix",
                    severity=IssueSeverity.ERROR,
                    resource=resource,
                    message="bucket names cannot start with 'goog' or contain 'google'",
                )
            ]
        if len(name) < SHORT_GLOBAL_NAME_LENGTH and "." not in name and "-" not in name:
            return [
                ValidationIssue(
                    code="short_global_name",
                    severity=IssueSeverity.WARNING,
                    resource=resource,
                    message=(
                        "short bucket names are likely taken globally; "
                        "the project prefix must make it unique"
                    ),
                )
            ]
        return []

    @staticmethod
    def _scope_of(resource: DeclaredResource) -> str:
        if resource.kind in GLOBAL_KINDS:
            return f"kind:{resource.kind.value}"
        return f"network:{resource.network or 'main'}"

    def _check_scopes(self, resources: List[DeclaredResource]) -> List[ValidationIssue]:
        """Report every resource that reuses a name already taken in its scope."""
        issues: List[ValidationIssue] = []
        seen: Dict[Tuple[str, str], DeclaredResource] = {}

        for resource in resources:
            key = (self._scope_of(resource), resource.name)
            first = seen.get(key)
            if first is None:
                seen[key] = resource
                continue

            if {first.kind, resource.kind} == CLOUD_RUN_KINDS:
                issues.append(
                    ValidationIssue(
                        code="cross_kind_collision",
                        severity=IssueSeverity.ERROR,
                        resource=resource,
                        message=(
                            f"{first.kind.value} '{first.name}' in network "
                            f"'{resource.network or 'main'}' deploys to the same "
                            "Cloud Run service name"
                        ),
                    )
                )
            else:
                issues.append(
                    ValidationIssue(
                        code="duplicate_name",
                        severity=IssueSeverity.ERROR,
                        resource=resource,
                        message=f"name already used by {first.kind.value} at {first.path or 'config'}",
                    )
                )

        return issues
