"""Model status endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from handpose.api.schemas.models import ModelStatusSchema
from handpose.api.services.state import model_status

router = APIRouter()


@router.get("/model", response_model=ModelStatusSchema)
def get_model_status() -> ModelStatusSchema:
    """Report whether the model session is loaded, and its resolved tensor names."""

    return ModelStatusSchema(**model_status())
