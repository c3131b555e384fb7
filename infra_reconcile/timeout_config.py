"""Centralized timeout configuration for external commands.

Every gcloud query and terraform invocation issued by the engine is bounded
by one of these values. A command that exceeds its timeout is killed and
recorded as a failure for that single resource or kind.

Environment Variables:
    - RECONCILE_TIMEOUT_QUICK: Version and readiness checks (default: 10s)
    - RECONCILE_TIMEOUT_SCAN_QUERY: One gcloud list call per kind (default: 30s)
    - RECONCILE_TIMEOUT_TERRAFORM_IMPORT: One terraform import (default: 60s)
    - RECONCILE_TIMEOUT_TERRAFORM_STATE_RM: One terraform state rm (default: 30s)
    - RECONCILE_TIMEOUT_CLOUD_DELETE: One gcloud delete call (default: 300s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Read a positive integer timeout from ``env_var``, else ``default``."""
    value = os.environ.get(env_var)
    if value is None:
        return default
    try:
        timeout = int(value)
    except ValueError:
        timeout = 0
    if timeout <= 0:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value!r}. "
            f"Expected a positive integer, using default: {default}s"
        )
        return default
    return timeout


class Timeouts:
    """Timeout constants, in seconds, for every external command category."""

    QUICK: Final[int] = _get_timeout("RECONCILE_TIMEOUT_QUICK", 10)
    SCAN_QUERY: Final[int] = _get_timeout("RECONCILE_TIMEOUT_SCAN_QUERY", 30)
    TERRAFORM_IMPORT: Final[int] = _get_timeout(
        "RECONCILE_TIMEOUT_TERRAFORM_IMPORT", 60
    )
    TERRAFORM_STATE_RM: Final[int] = _get_timeout(
        "RECONCILE_TIMEOUT_TERRAFORM_STATE_RM", 30
    )
    CLOUD_DELETE: Final[int] = _get_timeout("RECONCILE_TIMEOUT_CLOUD_DELETE", 300)
