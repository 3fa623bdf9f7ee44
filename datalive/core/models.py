"""
Core models and types for DataLive.

Enums are shared with db/models.py. The pydantic schemas describe the JSON
documents produced by the language models (analysis results, auth details)
and are used to validate that output before it is persisted.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class Provider(str, Enum):
    GOOGLE = "google"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    QWEN = "qwen"
    DEEPSEEK = "deepseek"


class TaskType(str, Enum):
    """Why an LLM call was made. Used for preference lookup and log tagging."""
    DOCUMENT_ANALYSIS = "document_analysis"
    AUTH_DETECTION = "auth_detection"
    API_EXECUTION = "api_execution"
    REPORT_GENERATION = "report_generation"
    INSIGHT_GENERATION = "insight_generation"
    DASHBOARD_GENERATION = "dashboard_generation"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentSource(str, Enum):
    PDF = "pdf"
    URL = "url"


class AuthStatus(str, Enum):
    UNKNOWN = "unknown"
    DETECTED = "detected"
    FAILED = "failed"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class ParamLocation(str, Enum):
    QUERY = "query"
    BODY = "body"
    PATH = "path"


class CredentialLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"
    BODY = "body"


# =============================================================================
# Model output schemas
# =============================================================================


class ModelOutput(BaseModel):
    """Base for LLM-authored documents: camelCase on the wire, extras kept."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class EndpointParam(ModelOutput):
    name: str
    type: str = ParamLocation.QUERY.value
    data_type: str = Field("string", alias="dataType")
    description: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        return str(v or ParamLocation.QUERY.value).strip().lower()


class EndpointSpec(ModelOutput):
    method: str = "GET"
    path: str = "/"
    description: str | None = None
    required_params: list[EndpointParam] = Field(default_factory=list, alias="requiredParams")
    optional_params: list[EndpointParam] = Field(default_factory=list, alias="optionalParams")
    response_structure: Any = Field(None, alias="responseStructure")
    status_codes: list[Any] = Field(default_factory=list, alias="statusCodes")

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> str:
        return str(v or "GET").strip().upper()

    @field_validator("required_params", "optional_params", "status_codes", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []


class DiscoveredAPISpec(ModelOutput):
    name: str = "Unnamed API"
    base_url: str = Field("", alias="baseUrl")
    description: str | None = None
    auth_type: str | None = Field(None, alias="authType")
    endpoints: list[EndpointSpec] = Field(default_factory=list)

    @field_validator("endpoints", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []


class AnalysisResult(ModelOutput):
    apis: list[DiscoveredAPISpec] = Field(default_factory=list)
    auth_details: dict[str, Any] | None = Field(None, alias="authDetails")
    data_models: list[Any] = Field(default_factory=list, alias="dataModels")

    @field_validator("apis", "data_models", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []


class CredentialField(ModelOutput):
    name: str
    label: str | None = None
    description: str | None = None
    type: str = "text"
    required: bool = True


class AuthFlow(ModelOutput):
    requires_login: bool = Field(False, alias="requiresLogin")
    login_endpoint: str | None = Field(None, alias="loginEndpoint")
    token_field: str | None = Field(None, alias="tokenField")
    refreshable: bool = False


class AuthDetails(ModelOutput):
    auth_type: str = Field("none", alias="authType")
    location: CredentialLocation | None = None
    field_name: str | None = Field(None, alias="fieldName")
    format: str | None = None
    credentials_needed: list[CredentialField] = Field(default_factory=list, alias="credentialsNeeded")
    auth_flow: AuthFlow | None = Field(None, alias="authFlow")
    examples: list[str] = Field(default_factory=list)

    @field_validator("auth_type", mode="before")
    @classmethod
    def normalize_auth_type(cls, v: Any) -> str:
        return str(v or "none").strip().lower()

    @field_validator("location", mode="before")
    @classmethod
    def normalize_location(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) and v.strip() else None

    @field_validator("credentials_needed", "examples", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []

    @model_validator(mode="after")
    def header_requires_field_name(self) -> "AuthDetails":
        if (
            self.auth_type != "none"
            and self.location == CredentialLocation.HEADER
            and not (self.field_name or "").strip()
        ):
            raise ValueError("header credentials require a non-empty fieldName")
        return self


# =============================================================================
# API Response Models
# =============================================================================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)


class APIResponse(BaseSchema):
    success: bool = True
    message: str | None = None
    data: Any = None
    meta: dict[str, Any] | None = None
