"""FastAPI application for decision extraction.

Endpoints:
- POST /decision-extract - Extract decision candidates from document pages
- GET /health - Service health and model availability

Environment variables:
- ANTHROPIC_API_KEY: Model credentials (without it every mode runs locally)
- DNAV_MODEL: Model name (default: claude-haiku-4-5)
- DNAV_MODEL_TIMEOUT: Per-call model deadline in seconds (default: 30)
- DNAV_EXTRACTION_MODE: local, extract or refine (default: extract)
- DNAV_PRESET: Threshold preset (default: default)
- DNAV_MAX_TOTAL_CHARS: Request size limit (default: 250000)
- LOG_LEVEL: Logging level (default: INFO)

Usage:
    uvicorn dnav.service.app:app --port 8000
"""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from dnav.extraction.augment import ExternalAugmentor
from dnav.extraction.config import ExtractionConfig, get_config
from dnav.extraction.errors import InvalidRequestError, PayloadTooLargeError
from dnav.extraction.local import Components
from dnav.extraction.pipeline import run_extraction
from dnav.extraction.schema import parse_request
from dnav.extraction.strategies import get_strategy
from dnav.shared.llm import LLMProvider, MissingCredentialsError, get_provider

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@dataclass(frozen=True)
class Settings:
    model: str = "claude-haiku-4-5"
    model_timeout: float = 30.0
    mode: str = "extract"
    preset: str = "default"
    max_total_chars: int = 250_000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            model=os.environ.get("DNAV_MODEL", cls.model),
            model_timeout=float(os.environ.get("DNAV_MODEL_TIMEOUT", cls.model_timeout)),
            mode=os.environ.get("DNAV_EXTRACTION_MODE", cls.mode),
            preset=os.environ.get("DNAV_PRESET", cls.preset),
            max_total_chars=int(os.environ.get("DNAV_MAX_TOTAL_CHARS", cls.max_total_chars)),
        )

    def extraction_config(self) -> ExtractionConfig:
        config = get_config(self.preset)
        augment = replace(config.augment, model=self.model, timeout_s=self.model_timeout)
        return config.with_overrides(augment=augment)


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""
    status: str = Field(..., description="'ok' once the service is up")
    mode: str
    preset: str
    model_available: bool = Field(..., description="Whether model credentials are configured")


def _build_provider() -> LLMProvider | None:
    try:
        return get_provider()
    except MissingCredentialsError as e:
        logger.warning(f"[Service] Model augmentation disabled: {e}")
        return None


def create_app(settings: Settings | None = None, provider: LLMProvider | None = None) -> FastAPI:
    """Build the service.

    Args:
        settings: Defaults to ``Settings.from_env()``.
        provider: Model provider; when omitted one is built from the environment
            at startup, and a missing API key leaves the service local-only.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"[Service] Starting with mode={settings.mode}, preset={settings.preset}, "
            f"model={settings.model}, timeout={settings.model_timeout}s"
        )
        app.state.settings = settings
        app.state.components = Components.build(settings.extraction_config())
        app.state.provider = provider if provider is not None else _build_provider()
        logger.info("[Service] Startup complete")
        yield
        logger.info("[Service] Shutdown complete")

    app = FastAPI(
        title="D-NAV Decision Intake",
        description="Extracts reviewable decision candidates from document pages",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.post("/decision-extract")
    async def decision_extract(request: Request) -> dict:
        """Extract decision candidates.

        Accepts either request shape. Invalid bodies get 400 and oversized
        ones 413; model failures still return 200 with ``meta.warnings``.
        """
        start_time = time.time()
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=400, detail={"error": "Request body is not valid JSON", "issues": []})

        try:
            extraction_request = parse_request(body, settings.max_total_chars)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail={"error": str(e), "issues": e.issues})
        except PayloadTooLargeError as e:
            raise HTTPException(status_code=413, detail={"error": str(e)})

        components: Components = app.state.components
        mode = extraction_request.options.mode or settings.mode
        augmentor = None
        if mode != "local" and app.state.provider is not None:
            augmentor = ExternalAugmentor(
                app.state.provider,
                components.config,
                components.vocabulary,
                model=extraction_request.options.model,
            )

        response = await run_extraction(extraction_request, get_strategy(mode, augmentor), components)
        logger.info(
            f"[Service] {extraction_request.doc_name}: {len(response.candidates)} candidates "
            f"in {(time.time() - start_time) * 1000:.0f}ms"
        )
        return response.wire()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            mode=settings.mode,
            preset=settings.preset,
            model_available=app.state.provider is not None,
        )

    return app


app = create_app()
