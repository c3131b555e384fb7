"""
Stack config loading and validation.
"""

from .loader import (
    CONFIG_FILENAMES,
    STACK_DIR,
    find_config_file,
    load_config,
    load_config_from_dir,
)
from .models import (
    BucketSettings,
    CronSettings,
    NamedResource,
    NetworkSettings,
    ProjectSettings,
    StackConfig,
)

__all__ = [
    "CONFIG_FILENAMES",
    "STACK_DIR",
    "BucketSettings",
    "CronSettings",
    "NamedResource",
    "NetworkSettings",
    "ProjectSettings",
    "StackConfig",
    "find_config_file",
    "load_config",
    "load_config_from_dir",
]
