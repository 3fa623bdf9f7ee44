"""
Model catalog and per-owner model preference.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from datalive.api.deps import CurrentUser, Orchestrator, get_model_catalog, get_provider_registry
from datalive.api.routes.schemas import UpdatePreferenceRequest
from datalive.core.models import APIResponse
from datalive.services.ai.catalog import ModelCatalog
from datalive.services.ai.providers import ProviderRegistry
from datalive.services.experts.industry import available_industries, lookup

router = APIRouter()

Catalog = Annotated[ModelCatalog, Depends(get_model_catalog)]


@router.get("")
async def list_models(
    current_user: CurrentUser,
    catalog: Catalog,
    providers: Annotated[ProviderRegistry, Depends(get_provider_registry)],
) -> APIResponse:
    """Models usable right now (their provider has an API key)."""
    return APIResponse(
        data={
            "models": [m.to_dict() for m in catalog.list_enabled()],
            "default": catalog.get_default().id,
            "providers": [p.value for p in providers.available()],
        },
    )


@router.get("/catalog")
async def get_catalog(current_user: CurrentUser, catalog: Catalog) -> APIResponse:
    models = catalog.list_all()
    return APIResponse(data=[m.to_dict() for m in models], meta={"total": len(models)})


@router.get("/industries")
async def list_industries(current_user: CurrentUser) -> APIResponse:
    return APIResponse(data=[lookup(key).to_dict() for key in available_industries()])


@router.get("/preferences")
async def get_preference(current_user: CurrentUser, orchestrator: Orchestrator) -> APIResponse:
    model_id = await orchestrator.get_preference(current_user.id)
    descriptor = orchestrator.catalog.get(model_id)
    return APIResponse(
        data={
            "model": model_id,
            "descriptor": descriptor.to_dict() if descriptor else None,
        },
    )


@router.put("/preferences")
async def update_preference(
    request: UpdatePreferenceRequest,
    current_user: CurrentUser,
    orchestrator: Orchestrator,
) -> APIResponse:
    descriptor = await orchestrator.set_preference(current_user.id, request.model)
    return APIResponse(
        message=f"Default model set to {descriptor.name}",
        data={"model": descriptor.id, "descriptor": descriptor.to_dict()},
    )
