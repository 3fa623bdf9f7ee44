"""
Parameter Inferencer

Sorts user-supplied values into query/body/path buckets according to the
endpoint declaration and asks the model for example values of any required
parameter the user left out. Inference is best effort and never aborts an
execution.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from datalive.core.exceptions import ParseError, ProviderError
from datalive.core.models import EndpointParam, EndpointSpec, ParamLocation, TaskType
from datalive.services.ai.json_decoder import require_object
from datalive.services.ai.orchestrator import AIOrchestrator

logger = structlog.get_logger(module="parameter_inferencer")

_BUCKETS = {location.value for location in ParamLocation}


@dataclass
class ResolvedParams:
    query: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    path: dict[str, Any] = field(default_factory=dict)
    inferred: list[str] = field(default_factory=list)

    def bucket(self, location: str) -> dict[str, Any]:
        return getattr(self, location)

    def to_dict(self) -> dict[str, Any]:
        return {"query": self.query, "body": self.body, "path": self.path}


def _is_present(user_params: dict[str, Any], name: str) -> bool:
    return name in user_params and user_params[name] is not None


def build_inference_prompt(endpoint: EndpointSpec, missing: list[EndpointParam]) -> str:
    lines = "\n".join(
        f"- {p.name} ({p.data_type}): {p.description or 'No description'}" for p in missing
    )
    example = json.dumps({p.name: "value" for p in missing}, indent=2)
    return f"""I need reasonable values for these API parameters:

Endpoint: {endpoint.method} {endpoint.path}
Description: {endpoint.description or 'No description'}

Missing parameters:
{lines}

Respond ONLY with a JSON object of example values:
{example}"""


class ParameterInferencer:

    def __init__(self, orchestrator: AIOrchestrator):
        self.orchestrator = orchestrator

    async def resolve(
        self,
        endpoint: EndpointSpec,
        user_params: dict[str, Any] | None,
        owner_id: str,
        project_id: int | None = None,
    ) -> ResolvedParams:
        user_params = user_params or {}
        resolved = ResolvedParams()

        for param in [*endpoint.required_params, *endpoint.optional_params]:
            if param.type not in _BUCKETS:
                logger.debug("param_location_unsupported", param=param.name, location=param.type)
                continue
            if _is_present(user_params, param.name):
                resolved.bucket(param.type)[param.name] = user_params[param.name]

        missing = [
            p for p in endpoint.required_params
            if p.type in _BUCKETS and not _is_present(user_params, p.name)
        ]
        if not missing:
            return resolved

        log = logger.bind(owner_id=owner_id, project_id=project_id, endpoint=endpoint.path)
        log.info("param_inference_start", missing=[p.name for p in missing])

        try:
            result = await self.orchestrator.execute(
                build_inference_prompt(endpoint, missing),
                owner_id,
                TaskType.API_EXECUTION,
                project_id,
            )
            values = require_object(result.text)
        except (ProviderError, ParseError) as e:
            log.warning("param_inference_failed", error=str(e))
            return resolved

        for param in missing:
            if param.name in values:
                resolved.bucket(param.type)[param.name] = values[param.name]
                resolved.inferred.append(param.name)

        log.info("param_inference_completed", inferred=resolved.inferred)
        return resolved
