"""Version model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class PipelineStage(str, Enum):
    """Pipeline stages in execution order."""

    STRATEGY = "Strategy blueprint"
    BRAND = "Brand kit"
    STRUCTURE = "Structure schema"
    ASSETS = "Asset generation"
    AGENT = "AI Agent profile"
    VALIDATE = "Build + Validate"
    COMPLETE = "Complete"


class Version(Base):
    """Version model - one pipeline run against a project.

    ``stage`` points at the next stage to execute. Stage payload slots are
    written together with ``stage`` and are never cleared.
    """

    __tablename__ = "versions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(64), ForeignKey("projects.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), ForeignKey("users.id"), index=True)

    stage: Mapped[str] = mapped_column(String(50), default=PipelineStage.STRATEGY.value)

    # Stage payloads
    strategy: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    brand: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    structure: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    assets: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    agent: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    validation: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_validated: Mapped[bool] = mapped_column(Boolean, default=False)
    files_stored: Mapped[bool] = mapped_column(Boolean, default=False)

    # Denormalized copy of the latest deployment for status display
    last_build: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
