#!/usr/bin/env python3
"""
Paddy leaf diagnosis app (FastAPI + Teachable Machine image model).

One process hosts ONE diagnosis session. The model is loaded once at startup;
the client then drives the steps upload -> chart -> validation -> result.

Expected files (directory from PADDY_MODEL_DIR, default ./model):
- model.json
- metadata.json
- weights.bin

Run (example):
    uvicorn paddy_expert.app:app --port 5000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_base_dir
from .errors import InvalidTransitionError
from .inference import InferenceLibraryHandle
from .knowledge import DiseaseInfo, load_disease_info
from .model_loader import ModelLoader
from .schemas import AnswerSet, WorkflowState
from .workflow import DiagnosisWorkflow

logger = logging.getLogger(__name__)


def build_workflow(settings: Settings, library: InferenceLibraryHandle) -> DiagnosisWorkflow:
    loader = ModelLoader(
        library,
        settings.model_url,
        settings.metadata_url,
        max_retries=settings.model_retries,
        timeout=settings.model_timeout,
    )
    knowledge = load_disease_info(settings.knowledge_path)
    return DiagnosisWorkflow(
        loader,
        knowledge,
        confidence_threshold=settings.confidence_threshold,
        max_image_bytes=settings.max_image_bytes,
    )


def create_app(
    settings: Optional[Settings] = None,
    library: Optional[InferenceLibraryHandle] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    library = library or InferenceLibraryHandle()
    workflow = build_workflow(settings, library)
    kb: Dict[str, DiseaseInfo] = workflow.knowledge

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        await workflow.initialize()
        yield

    app = FastAPI(title="Paddy Leaf Diagnosis (image model + symptom questionnaire)", lifespan=lifespan)
    app.state.settings = settings
    app.state.library = library
    app.state.workflow = workflow

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "step": exc.step},
        )

    @app.get("/api/health")
    async def health() -> Dict[str, object]:
        return {
            "status": "ok",
            "diseasesLoaded": list(kb.keys()),
            "modelLoading": workflow.model_loading,
            "imageModelLoaded": workflow.is_ready,
            "modelError": workflow.model_error,
        }

    @app.get("/api/diagnostics")
    async def diagnostics() -> Dict[str, object]:
        files = {
            Path(url).name: Path(url).exists()
            for url in (settings.model_url, settings.metadata_url, settings.weights_url)
        }
        return {
            "modelDir": str(settings.model_dir),
            "files": files,
            "libraryImported": library.loaded,
            "modelLoaded": workflow.is_ready,
            "modelError": workflow.model_error,
        }

    @app.get("/api/state", response_model=WorkflowState)
    async def state() -> WorkflowState:
        return workflow.snapshot()

    @app.post("/api/image", response_model=WorkflowState)
    async def upload_image(image: UploadFile = File(...)) -> WorkflowState:
        data = await image.read()
        workflow.select_image(image.filename or "image", image.content_type, data)
        return workflow.snapshot()

    @app.post("/api/predict", response_model=WorkflowState)
    async def predict() -> WorkflowState:
        await workflow.run_prediction()
        return workflow.snapshot()

    @app.post("/api/validation", response_model=WorkflowState)
    async def start_validation() -> WorkflowState:
        workflow.proceed_to_validation()
        return workflow.snapshot()

    @app.post("/api/answers", response_model=WorkflowState)
    async def submit_answers(answers: AnswerSet) -> WorkflowState:
        workflow.submit_answers(answers)
        return workflow.snapshot()

    @app.post("/api/reset", response_model=WorkflowState)
    async def reset() -> WorkflowState:
        workflow.reset()
        return workflow.snapshot()

    @app.get("/api/diseases/{disease_class}", response_model=DiseaseInfo)
    async def disease(disease_class: str) -> DiseaseInfo:
        info = kb.get(disease_class)
        if info is None:
            raise HTTPException(status_code=404, detail="Unknown disease class '%s'" % disease_class)
        return info

    frontend_dir = get_base_dir().parent / "frontend"
    if frontend_dir.exists():
        app.mount(
            "/",
            StaticFiles(directory=frontend_dir, html=True),
            name="frontend",
        )

    return app


app = create_app()
