"""HTTP surface for codestream.

``create_app`` wires the Ollama client, prompt builder, relay and project
services into a FastAPI application. The streaming endpoint runs each
generation in its own task that writes into a bounded :class:`QueueEventSink`;
the response body reads from the same sink and frames events as SSE.

Run with ``codestream serve`` or ``uvicorn --factory codestream.server:create_app``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field

from codestream.config import Config
from codestream.ollama_client import OllamaClient
from codestream.project import (
    ArchiveError,
    ProjectContextReader,
    ProjectStructure,
    ProjectStructureService,
    StarterTemplates,
)
from codestream.project.starters import ARCHIVE_NAMES
from codestream.prompts import PromptBuilder, TargetKind
from codestream.storage import FileGenerationStore, new_generation_id
from codestream.streaming import (
    SSE_MEDIA_TYPE,
    GenerationRelay,
    QueueEventSink,
    TokenFilter,
    format_sse,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="What to generate")
    existing_project_path: Optional[str] = Field(
        default=None, description="Directory of a project to extend"
    )


class GenerateResponse(BaseModel):
    generation_id: str
    code: str
    structure: ProjectStructure


class StructureRequest(BaseModel):
    generated_code: str = Field(default="", description="Raw model output")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _zip_response(data: bytes, filename: str = "project.zip") -> Response:
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _track(tasks: set[asyncio.Task], task: asyncio.Task) -> None:
    """Keep a strong reference to *task* until it finishes."""
    tasks.add(task)

    def _done(finished: asyncio.Task) -> None:
        tasks.discard(finished)
        if not finished.cancelled() and finished.exception() is not None:
            logger.error("Relay task crashed", exc_info=finished.exception())

    task.add_done_callback(_done)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    config: Config | None = None,
    client: OllamaClient | None = None,
    store: FileGenerationStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings; read from the environment when omitted.
        client: Upstream client; built from ``config.ollama`` when omitted.
        store: Completion handoff store; defaults to ``config.generations_dir``.
    """
    config = config or Config.from_env()
    client = client or OllamaClient.from_config(config.ollama)
    store = store or FileGenerationStore(config.generations_dir)
    prompts = PromptBuilder()
    structures = ProjectStructureService()
    context_reader = ProjectContextReader(config.context)
    starters = StarterTemplates(service=structures)
    relay_tasks: set[asyncio.Task] = set()

    if config.context.allowed_root is None:
        logger.warning(
            "No context root configured; existing_project_path may name any readable directory. "
            "Set CODESTREAM_CONTEXT_ROOT to restrict it."
        )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        if relay_tasks:
            logger.info("Waiting for %d running generation(s)", len(relay_tasks))
            await asyncio.gather(*relay_tasks, return_exceptions=True)

    app = FastAPI(title="codestream", lifespan=lifespan)
    app.state.config = config
    app.state.client = client
    app.state.store = store
    app.state.relay_tasks = relay_tasks

    async def _model_input(target: TargetKind, prompt: str, project_path: str | None) -> str:
        context = ""
        if project_path:
            loop = asyncio.get_running_loop()
            context = await loop.run_in_executor(None, context_reader.read_context, project_path)
        try:
            return prompts.build(target, prompt, context)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    def _load(generation_id: str) -> str:
        try:
            return store.load(generation_id)
        except KeyError as exc:
            raise HTTPException(
                status_code=404, detail=f"Unknown generation: {generation_id}"
            ) from exc

    def _archive(structure: ProjectStructure, filename: str = "project.zip") -> Response:
        try:
            return _zip_response(structures.archive(structure), filename)
        except ArchiveError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "ollama": await client.is_available()}

    @app.get("/api/models")
    async def models() -> dict:
        return {"models": await client.list_models()}

    @app.get("/api/generate/{target}/stream")
    async def generate_stream(
        target: TargetKind,
        prompt: str = Query(..., min_length=1),
        existing_project_path: Optional[str] = Query(default=None),
    ) -> StreamingResponse:
        model_input = await _model_input(target, prompt, existing_project_path)
        generation_id = new_generation_id()

        async def handoff(text: str) -> None:
            await store.save(
                generation_id,
                text,
                target=target.value,
                prompt=prompt,
                model=config.ollama.model,
            )

        sink = QueueEventSink(maxsize=config.stream.queue_size)
        relay = GenerationRelay(
            client,
            model_input,
            sink,
            on_complete=handoff,
            model=config.ollama.model,
            timeout=config.ollama.timeout,
            token_filter=TokenFilter(
                config.stream.refusal_phrases,
                drop_whitespace=config.stream.drop_whitespace_fragments,
            ),
        )
        logger.info("Starting %s generation %s", target.value, generation_id)
        _track(relay_tasks, asyncio.create_task(relay.run()))

        async def body():
            async for event in sink.events():
                yield format_sse(event)

        return StreamingResponse(
            body(),
            media_type=SSE_MEDIA_TYPE,
            headers={"Cache-Control": "no-cache", "X-Generation-Id": generation_id},
        )

    @app.post("/api/generate/{target}", response_model=GenerateResponse)
    async def generate(target: TargetKind, body: GenerateRequest) -> GenerateResponse:
        model_input = await _model_input(target, body.prompt, body.existing_project_path)
        result = await client.generate(model_input)
        if not result.success:
            raise HTTPException(status_code=502, detail=result.error)
        if not result.text.strip():
            raise HTTPException(
                status_code=502,
                detail="No code was generated. Please check your prompt and Ollama connection.",
            )

        generation_id = new_generation_id()
        await store.save(
            generation_id,
            result.text,
            target=target.value,
            prompt=body.prompt,
            model=result.model,
        )
        return GenerateResponse(
            generation_id=generation_id,
            code=result.text,
            structure=structures.build(result.text),
        )

    @app.post("/api/project/structure", response_model=ProjectStructure)
    async def project_structure(body: StructureRequest) -> ProjectStructure:
        return structures.build(body.generated_code)

    @app.post("/api/project/download")
    async def project_download(structure: ProjectStructure) -> Response:
        return _archive(structure)

    @app.get("/api/generations/{generation_id}/structure", response_model=ProjectStructure)
    async def generation_structure(generation_id: str) -> ProjectStructure:
        return structures.build(_load(generation_id))

    @app.get("/api/generations/{generation_id}/download")
    async def generation_download(generation_id: str) -> Response:
        return _archive(structures.build(_load(generation_id)))

    @app.get("/api/templates/{target}/empty")
    async def template_download(
        target: TargetKind,
        name: Optional[str] = Query(default=None, description="Project name"),
    ) -> Response:
        try:
            structure = starters.structure(target, name)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _archive(structure, ARCHIVE_NAMES[target])

    return app

