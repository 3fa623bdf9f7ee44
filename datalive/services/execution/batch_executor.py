"""
Batch Executor

Runs every endpoint of an API once, in declaration order, with no user
parameters. One endpoint failing never stops the others.
"""

from dataclasses import dataclass
from typing import Any

import structlog

from datalive.core.exceptions import ResourceNotFoundError
from datalive.db import DiscoveredAPIModel
from datalive.services.execution.endpoint_executor import EndpointExecutor

logger = structlog.get_logger(module="batch_executor")


@dataclass
class BatchItemResult:
    index: int
    endpoint: str
    method: str
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "index": self.index,
            "endpoint": self.endpoint,
            "method": self.method,
            "success": self.success,
        }
        if self.success:
            item["result"] = self.result
        else:
            item["error"] = self.error
        return item


def summarize(results: list[BatchItemResult]) -> dict[str, int]:
    succeeded = sum(1 for r in results if r.success)
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}


class BatchExecutor:

    def __init__(self, executor: EndpointExecutor):
        self.executor = executor

    async def execute_all(
        self,
        api_id: int,
        owner_id: str,
        project_id: int | None = None,
    ) -> list[BatchItemResult]:
        api = await self.executor.db.get(DiscoveredAPIModel, api_id)
        if api is None:
            raise ResourceNotFoundError("API", api_id)

        endpoints: list[dict[str, Any]] = list(api.endpoints or [])
        log = logger.bind(owner_id=owner_id, project_id=project_id, api_id=api_id)
        log.info("batch_execution_start", endpoints=len(endpoints))

        results: list[BatchItemResult] = []
        for index, endpoint in enumerate(endpoints):
            path = endpoint.get("path", "")
            method = str(endpoint.get("method", "GET")).upper()
            try:
                outcome = await self.executor.execute(
                    api_id,
                    endpoint,
                    {},
                    owner_id,
                    project_id,
                    endpoint_index=index,
                )
                results.append(BatchItemResult(index, path, method, success=True, result=outcome.to_dict()))
            except Exception as e:
                log.error("batch_endpoint_failed", endpoint=path, index=index, error=str(e))
                await self.executor.db.rollback()
                results.append(BatchItemResult(index, path, method, success=False, error=str(e)))

        log.info("batch_execution_completed", **summarize(results))
        return results
