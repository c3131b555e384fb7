"""Pre-deployment validation of declared resource names."""

from .name_validator import (
    NAMING_RULES,
    RESERVED_NAMES,
    DeclaredKind,
    DeclaredResource,
    IssueSeverity,
    NameValidationReport,
    NamingRule,
    NamingValidator,
    ValidationIssue,
    declared_resources_from_config,
)

__all__ = [
    "NAMING_RULES",
    "RESERVED_NAMES",
    "DeclaredKind",
    "DeclaredResource",
    "IssueSeverity",
    "NameValidationReport",
    "NamingRule",
    "NamingValidator",
    "ValidationIssue",
    "declared_resources_from_config",
]
