"""
API endpoint handlers for the FastAPI application.
"""
import logging
from typing import Optional

from fastapi import File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .context import ContextAssembler
from .errors import FolderNotFoundError, SolveAIError, ValidationError
from .intake import UploadCollector
from .models import (
    ContextFile,
    ExtractTextRequest,
    ExtractTextResponse,
    Folder,
    FolderCreateRequest,
    FolderPatch,
    FolderSummary,
    HealthResponse,
    SolveRequest,
    SolveResponse,
)
from .presentation import render_markdown
from .utils import encode_data_url

logger = logging.getLogger(__name__)

SOLVE_FAILED_MESSAGE = "Erro ao resolver questão"
EXTRACT_FAILED_MESSAGE = "Erro ao extrair texto"


def first_validation_message(exc: RequestValidationError) -> str:
    """Short message for the first validation error of a request."""
    errors = exc.errors()
    if not errors:
        return "Dados inválidos"

    error = errors[0]
    if error.get("type") == "required_text":
        return error["msg"]

    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{field}: {error['msg']}" if field else error["msg"]


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": first_validation_message(exc)})


async def solveai_error_handler(request: Request, exc: SolveAIError):
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def register_routes(app, solver, get_catalog):
    """
    Register all API routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        solver: Solver instance
        get_catalog: Async callable returning the CatalogStore
    """
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SolveAIError, solveai_error_handler)

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse(gemini_configured=solver.is_configured)

    @app.post("/api/solve", response_model=SolveResponse)
    async def solve(request: SolveRequest):
        """Solve a question with the given context materials."""
        try:
            return await solver.solve_question(
                request.question_text,
                request.context_materials,
                request.folder_info,
            )
        except SolveAIError:
            raise
        except Exception:
            logger.exception("Error solving question")
            return JSONResponse(status_code=500, content={"error": SOLVE_FAILED_MESSAGE})

    @app.post("/api/extract-text", response_model=ExtractTextResponse)
    async def extract_text(request: ExtractTextRequest):
        """Transcribe the text of an image (or PDF) sent as base64."""
        try:
            text = await solver.extract_text_from_image(request.image_base64, request.mime_type)
        except SolveAIError:
            raise
        except Exception:
            logger.exception("Error extracting text")
            return JSONResponse(status_code=500, content={"error": EXTRACT_FAILED_MESSAGE})
        return ExtractTextResponse(text=text)

    @app.post("/api/solve-with-context", response_model=SolveResponse)
    async def solve_with_context(
        question_text: str = Form("", alias="questionText"),
        folder_id: Optional[str] = Form(None, alias="folderId"),
        files: Optional[list[UploadFile]] = File(None),
        output_format: str = Query("json", alias="format"),
    ):
        """
        Solve a question composed from typed text and ad-hoc uploads, using
        the selected folder as context.
        """
        collector = UploadCollector(solver)
        try:
            for upload in files or []:
                await collector.add(
                    upload.filename or "arquivo",
                    upload.content_type or "",
                    await upload.read(),
                )

            question = collector.compose_question(question_text)
            if not question:
                raise ValidationError("O texto da questão é obrigatório")

            catalog = await get_catalog()
            context = await ContextAssembler(catalog, solver).assemble(folder_id)
            result = await solver.solve_question(question, context.context_materials, context.folder_info)
        except SolveAIError:
            raise
        except Exception:
            logger.exception("Error solving question with context")
            return JSONResponse(status_code=500, content={"error": SOLVE_FAILED_MESSAGE})
        finally:
            collector.clear()

        if output_format == "markdown":
            return PlainTextResponse(render_markdown(result), media_type="text/markdown")
        return result

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @app.get("/api/folders", response_model=list[FolderSummary])
    async def list_folders():
        catalog = await get_catalog()
        summaries = []
        for folder in await catalog.get_all_folders():
            file_count = await catalog.get_folder_file_count(folder.id)
            summaries.append(FolderSummary(**folder.model_dump(), file_count=file_count))
        return summaries

    @app.post("/api/folders", response_model=Folder, status_code=201)
    async def create_folder(request: FolderCreateRequest):
        catalog = await get_catalog()
        return await catalog.create_folder(request.name)

    @app.get("/api/folders/{folder_id}", response_model=Folder)
    async def get_folder(folder_id: str):
        catalog = await get_catalog()
        folder = await catalog.get_folder_by_id(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        return folder

    @app.patch("/api/folders/{folder_id}", response_model=Folder)
    async def update_folder(folder_id: str, patch: FolderPatch):
        catalog = await get_catalog()
        return await catalog.update_folder(folder_id, patch)

    @app.delete("/api/folders/{folder_id}", status_code=204, response_class=Response)
    async def delete_folder(folder_id: str):
        catalog = await get_catalog()
        await catalog.delete_folder(folder_id)
        return Response(status_code=204)

    @app.get("/api/folders/{folder_id}/files", response_model=list[ContextFile])
    async def list_files(folder_id: str):
        catalog = await get_catalog()
        if await catalog.get_folder_by_id(folder_id) is None:
            raise FolderNotFoundError(folder_id)
        return await catalog.get_files_by_folder(folder_id)

    @app.post("/api/folders/{folder_id}/files", response_model=ContextFile, status_code=201)
    async def upload_file(folder_id: str, file: UploadFile = File(...)):
        """Store an uploaded file in a folder."""
        catalog = await get_catalog()
        content = await file.read()
        mime_type = file.content_type or "application/octet-stream"
        return await catalog.add_file(
            folder_id=folder_id,
            name=file.filename or "arquivo",
            mime_type=mime_type,
            size=len(content),
            data=encode_data_url(content, mime_type),
        )

    @app.delete("/api/files/{file_id}", status_code=204, response_class=Response)
    async def delete_file(file_id: str):
        catalog = await get_catalog()
        await catalog.delete_file(file_id)
        return Response(status_code=204)
