"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from handpose.api.routes import config, health, infer, model
from handpose.core.errors import InferenceError, ModelLoadError, ShapeMismatch

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler.

    Ensures the model session is released when the app shuts down.
    """

    from handpose.api.services.state import reset_pipeline

    yield
    reset_pipeline()


app = FastAPI(title="HandPose Inference API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShapeMismatch)
async def _shape_mismatch(_: Request, exc: ShapeMismatch) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ModelLoadError)
async def _model_not_ready(_: Request, exc: ModelLoadError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(InferenceError)
async def _inference_failed(_: Request, exc: InferenceError) -> JSONResponse:
    logger.error("Inference failed: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


app.include_router(health.router)
app.include_router(config.router)
app.include_router(model.router)
app.include_router(infer.router)


if __name__ == "__main__":
    uvicorn.run("handpose.api.main:app", host="0.0.0.0", port=8000, reload=True)
