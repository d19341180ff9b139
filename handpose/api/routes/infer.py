"""Inference endpoint: raw RGBA frame in, best detection out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from handpose.api.schemas.models import DetectionSchema, InferenceSchema
from handpose.api.services.state import get_pipeline
from handpose.core.pipeline import KeypointPipeline

router = APIRouter()


@router.post("/infer", response_model=InferenceSchema)
async def infer(
    request: Request, pipeline: KeypointPipeline = Depends(get_pipeline)
) -> InferenceSchema:
    """Decode one frame.

    The request body is the frame's RGBA bytes (`application/octet-stream`),
    exactly ``4 * input_width * input_height`` long. A frame without a detection
    yields ``{"detection": null}``, not an error.
    """

    body = await request.body()
    detection, timings = await run_in_threadpool(pipeline.process_with_profile, body)
    return InferenceSchema(
        detection=DetectionSchema.from_detection(detection) if detection is not None else None,
        timings=timings,
    )
