"""
SQLAlchemy ORM models for DataLive.

Organized into sections:
- Projects & Documents
- Discovered APIs & Credentials
- Executions
- AI Output (insights, dashboards, conversations)
- Preferences
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from datalive.core.models import AuthStatus, DocumentStatus, ExecutionStatus
from datalive.db.database import Base


class TimestampMixin:
    """Mixin for created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )


# ==============================================================================
# Projects & Documents
# ==============================================================================


class ProjectModel(Base, TimestampMixin):
    """Ownership root: every document, API and execution hangs off a project."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    industry: Mapped[str] = mapped_column(String(50), default="general")

    documents: Mapped[list["DocumentModel"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    apis: Mapped[list["DiscoveredAPIModel"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class DocumentModel(Base, TimestampMixin):
    """Uploaded PDF or registered documentation URL."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    source_type: Mapped[str] = mapped_column(String(10), nullable=False)
    source_url: Mapped[str | None] = mapped_column(String(2000))
    file_size: Mapped[int | None] = mapped_column(Integer)
    text_content: Mapped[str | None] = mapped_column(Text)

    # Analysis lifecycle
    status: Mapped[str] = mapped_column(
        String(20), default=DocumentStatus.PENDING.value, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text)
    analysis_result: Mapped[dict | None] = mapped_column(JSON)
    analysis_model: Mapped[str | None] = mapped_column(String(100))
    analysis_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    project: Mapped["ProjectModel"] = relationship(back_populates="documents")


# ==============================================================================
# Discovered APIs & Credentials
# ==============================================================================


class DiscoveredAPIModel(Base, TimestampMixin):
    """An API described in a document. Owns its ordered endpoint list."""

    __tablename__ = "apis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_id: Mapped[int | None] = mapped_column(
        ForeignKey("documents.id", ondelete="SET NULL"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_url: Mapped[str] = mapped_column(String(2000), default="")
    description: Mapped[str | None] = mapped_column(Text)

    auth_type: Mapped[str | None] = mapped_column(String(50))
    auth_details: Mapped[dict | None] = mapped_column(JSON)
    auth_status: Mapped[str] = mapped_column(String(20), default=AuthStatus.UNKNOWN.value)

    # EndpointSpec documents in declaration order (camelCase keys)
    endpoints: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    project: Mapped["ProjectModel"] = relationship(back_populates="apis")
    credentials: Mapped[list["CredentialModel"]] = relationship(
        back_populates="api", cascade="all, delete-orphan", passive_deletes=True
    )


class CredentialModel(Base, TimestampMixin):
    """One credential value for an API, Fernet-encrypted at rest."""

    __tablename__ = "credentials"
    __table_args__ = (UniqueConstraint("api_id", "key", name="uq_credentials_api_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    api_id: Mapped[int] = mapped_column(
        ForeignKey("apis.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))

    api: Mapped["DiscoveredAPIModel"] = relationship(back_populates="credentials")


# ==============================================================================
# Executions (append-only)
# ==============================================================================


class ExecutionModel(Base):
    """One live invocation of an endpoint, successful or not."""

    __tablename__ = "executions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    api_id: Mapped[int] = mapped_column(
        ForeignKey("apis.id", ondelete="CASCADE"), nullable=False, index=True
    )
    endpoint_index: Mapped[int | None] = mapped_column(Integer)
    endpoint: Mapped[str] = mapped_column(String(2000), nullable=False)
    method: Mapped[str] = mapped_column(String(10), nullable=False)

    request_url: Mapped[str | None] = mapped_column(Text)
    request_params: Mapped[dict | None] = mapped_column(JSON)
    request_headers: Mapped[dict | None] = mapped_column(JSON)
    request_body: Mapped[dict | None] = mapped_column(JSON)

    response_status: Mapped[int | None] = mapped_column(Integer)
    response_data: Mapped[Any] = mapped_column(JSON)
    response_time_ms: Mapped[int | None] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(
        String(20), default=ExecutionStatus.PENDING.value, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text)
    ai_explanation: Mapped[str | None] = mapped_column(Text)
    ai_model: Mapped[str | None] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


# ==============================================================================
# AI Output
# ==============================================================================


class InsightModel(Base, TimestampMixin):
    __tablename__ = "insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))
    priority: Mapped[str | None] = mapped_column(String(20))
    data: Mapped[dict | None] = mapped_column(JSON)
    ai_model: Mapped[str | None] = mapped_column(String(100))


class DashboardModel(Base, TimestampMixin):
    __tablename__ = "dashboards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    layout: Mapped[dict] = mapped_column(JSON, nullable=False)
    data_sources: Mapped[dict | None] = mapped_column(JSON)
    ai_model: Mapped[str | None] = mapped_column(String(100))


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_message: Mapped[str] = mapped_column(Text, nullable=False)
    ai_response: Mapped[str] = mapped_column(Text, nullable=False)
    model_used: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ==============================================================================
# Preferences
# ==============================================================================


class UserPreferenceModel(Base, TimestampMixin):
    """Global per-owner model preference."""

    __tablename__ = "user_preferences"

    owner_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    default_model: Mapped[str] = mapped_column(String(100), nullable=False)
