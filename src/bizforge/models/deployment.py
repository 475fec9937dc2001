"""Deployment record model for tracking build-and-deploy attempts."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class DeploymentStatus(str, Enum):
    """Build lifecycle: QUEUED -> WORKING -> SUCCESS | FAILURE."""

    QUEUED = "QUEUED"
    WORKING = "WORKING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({DeploymentStatus.SUCCESS, DeploymentStatus.FAILURE})


class DeploymentRecord(Base):
    """Track one build/deploy attempt, keyed by the provider's build id."""

    __tablename__ = "deployments"

    build_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    version_id: Mapped[str] = mapped_column(String(64), ForeignKey("versions.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    service_name: Mapped[str] = mapped_column(String(100))
    region: Mapped[str] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(
        String(20), default=DeploymentStatus.WORKING.value, index=True
    )
    service_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_last_build(self) -> dict:
        """Denormalized shape stored on ``versions.last_build``."""
        return {
            "id": self.build_id,
            "status": self.status,
            "serviceName": self.service_name,
            "serviceUrl": self.service_url,
            "region": self.region,
        }

    def __repr__(self) -> str:
        return (
            f"<DeploymentRecord(build_id={self.build_id}, version={self.version_id}, "
            f"status={self.status})>"
        )
