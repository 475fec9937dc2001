"""Deployment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..models import DeploymentStatus


class DeploymentSubmitted(BaseModel):
    build_id: str


class DeploymentStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    build_id: str
    version_id: str
    service_name: str
    region: str
    status: DeploymentStatus
    service_url: str | None = None
    timestamp: datetime
