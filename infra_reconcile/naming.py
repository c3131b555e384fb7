"""Project naming conventions for deployed resources.

Deployed resources are named ``{project}-{suffix}`` or, for globally unique
resources such as website buckets, ``{gcp_project_id}-{project}-{suffix}``.
The scanner uses these patterns to decide which cloud resources belong to a
project; the planner uses them to preview a prefix change.
"""

import hashlib
import re
from typing import Optional

MAX_NAME_LENGTH = 63

# New project prefixes: lowercase letter first, then lowercase/digits/hyphens
PREFIX_PATTERN = re.compile(r"^[a-z][a-z0-9-]{0,30}$")

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


def matches_project_pattern(
    resource_name: str, project_name: str, gcp_project_id: str
) -> bool:
    """Check whether a cloud resource name belongs to the project."""
    if not resource_name or not project_name:
        return False
    return resource_name.startswith(f"{project_name}-") or resource_name.startswith(
        f"{gcp_project_id}-{project_name}-"
    )


def to_terraform_name(name: str) -> str:
    """Normalize a cloud resource name into a Terraform resource label.

    Every non-alphanumeric character becomes a hyphen, matching the labels
    the CDKTF generators emit.
    """
    return _NON_ALPHANUMERIC.sub("-", name)


def _short_hash(value: str, length: int) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def prefix_resource_name(project_name: str, resource_name: str) -> str:
    """Prefix a resource name with the project name within the 63 char limit.

    Overlong names keep the first 20 characters of the project name, a short
    hash of the full project name and as much of the resource name as fits.
    """
    prefixed = f"{project_name}-{resource_name}"
    if len(prefixed) <= MAX_NAME_LENGTH:
        return prefixed

    project_part = project_name[:20]
    digest = _short_hash(project_name, 4)
    remaining = MAX_NAME_LENGTH - len(project_part) - len(digest) - 2
    return f"{project_part}-{digest}-{resource_name[:remaining]}"


def prefix_bucket_name(project_name: str, bucket_name: str) -> str:
    """Prefix a globally unique bucket name, hashing when it would overflow."""
    prefixed = f"{project_name}-{bucket_name}"
    if len(prefixed) <= MAX_NAME_LENGTH:
        return prefixed

    digest = _short_hash(f"{project_name}:{bucket_name}", 8)
    remaining = MAX_NAME_LENGTH - len(digest) - 1
    return f"{bucket_name[:remaining]}-{digest}"


def extract_suffix(
    resource_name: str, project_name: str, gcp_project_id: Optional[str] = None
) -> Optional[str]:
    """Return the part of a resource name after the project prefix, if any."""
    if gcp_project_id:
        scoped = f"{gcp_project_id}-{project_name}-"
        if resource_name.startswith(scoped):
            return resource_name[len(scoped):]
    prefix = f"{project_name}-"
    if resource_name.startswith(prefix):
        return resource_name[len(prefix):]
    return None
