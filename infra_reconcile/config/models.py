"""
Configuration models for the declarative project config.

Only the fields the reconciliation engine reads are modelled; everything
else in the config (runtimes, env vars, build settings) is ignored. Resource
names are deliberately not pattern-checked here so that the naming validator
can report every problem at once instead of failing on the first one.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NamedResource(BaseModel):
    """Any declared resource identified by a name."""

    name: str = Field(description="Declared resource name")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BucketSettings(NamedResource):
    storage_class: Optional[str] = Field(default=None, alias="storageClass")
    location: Optional[str] = None


class CronSettings(NamedResource):
    schedule: Optional[str] = None
    target: Optional[str] = None


class NetworkSettings(BaseModel):
    """A network and the resources scoped to it."""

    name: str = Field(default="main", description="Network name")
    containers: List[NamedResource] = Field(default_factory=list)
    functions: List[NamedResource] = Field(default_factory=list)
    databases: List[NamedResource] = Field(default_factory=list)
    caches: List[NamedResource] = Field(default_factory=list)
    uis: List[NamedResource] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProjectSettings(BaseModel):
    """The ``project`` block of the stack config."""

    name: str = Field(min_length=1, description="Project name, used as resource prefix")
    gcp_project_id: str = Field(
        alias="gcpProjectId", min_length=1, description="Google Cloud project ID"
    )
    region: str = Field(min_length=1, description="Default deployment region")
    backend: str = Field(default="cdktf", description="Code generation backend")
    labels: Dict[str, str] = Field(default_factory=dict)

    buckets: List[BucketSettings] = Field(default_factory=list)
    secrets: List[NamedResource] = Field(default_factory=list)
    topics: List[NamedResource] = Field(default_factory=list)
    queues: List[NamedResource] = Field(default_factory=list)
    crons: List[CronSettings] = Field(default_factory=list)
    networks: List[NetworkSettings] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Regions look like ``us-central1``."""
        if " " in v or v != v.lower():
            raise ValueError(f"Invalid region '{v}': expected a lowercase region id")
        return v


class StackConfig(BaseModel):
    """Root of the stack config file."""

    project: ProjectSettings

    model_config = ConfigDict(extra="ignore")
