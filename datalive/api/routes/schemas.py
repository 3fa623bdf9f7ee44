"""
Pydantic request models for the REST surface.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from datalive.services.experts.industry import normalize_industry


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    industry: str = "general"

    @field_validator("industry")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_industry(v)


class UpdateProjectRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    industry: str | None = None

    @field_validator("industry")
    @classmethod
    def normalize(cls, v: str | None) -> str | None:
        return normalize_industry(v) if v is not None else None


class RegisterURLRequest(BaseModel):
    project_id: int
    url: str = Field(..., min_length=1, max_length=2000)
    name: str | None = None


class UpdatePreferenceRequest(BaseModel):
    model: str


class SaveCredentialsRequest(BaseModel):
    credentials: dict[str, str]


class DetectAuthRequest(BaseModel):
    """Text to analyze. Defaults to the source document of the API."""
    document_text: str | None = None


class ExecuteRequest(BaseModel):
    api_id: int
    endpoint_index: int | None = None
    endpoint: dict[str, Any] | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class ExecuteAllRequest(BaseModel):
    api_id: int


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)
