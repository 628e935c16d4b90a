"""Model catalogue and model preference routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from chatblocks.core.log_sanitizer import get_current_user, sanitize_for_logging
from chatblocks.infrastructure.app_factory import app_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/models", tags=["config"])

PREFERENCE_MAX_AGE = 60 * 60 * 24 * 365


class ModelPreferenceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model_id: str = Field(alias="modelId")


def _preferred_model(request: Request) -> Optional[str]:
    cookie_name = app_factory.get_config_manager().app_settings.model_cookie_name
    return request.cookies.get(cookie_name)


@router.get("")
async def get_models(
    request: Request,
    current_user: str = Depends(get_current_user),
):
    """Available models, the default, and the caller's selection."""
    catalogue = app_factory.get_config_manager().models_config
    preferred = _preferred_model(request)
    selected = preferred if catalogue.get(preferred) is not None else catalogue.default_model
    return {
        "models": [
            {"id": m.id, "label": m.label, "description": m.description}
            for m in catalogue.models
        ],
        "default": catalogue.default_model,
        "selected": selected,
    }


@router.post("/preference")
async def set_model_preference(
    body: ModelPreferenceRequest,
    response: Response,
    current_user: str = Depends(get_current_user),
):
    """Remember the caller's model choice in a cookie."""
    config_manager = app_factory.get_config_manager()
    if config_manager.get_model(body.model_id) is None:
        raise HTTPException(status_code=404, detail="Model not found")
    response.set_cookie(
        key=config_manager.app_settings.model_cookie_name,
        value=body.model_id,
        max_age=PREFERENCE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    logger.info("Model preference set to %s", sanitize_for_logging(body.model_id))
    return {"selected": body.model_id}
