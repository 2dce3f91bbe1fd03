from __future__ import annotations
from typing import Optional, Union
from fastapi import APIRouter, Depends, Header, Path as FPath, Request
from starlette.concurrency import run_in_threadpool

from app.models.responses import ErrorResponse, FileUploadResponse, FilesUploadResponse
from app.routers.deps import get_files_pipeline
from app.services.uploads import UploadPipeline

router = APIRouter(prefix="/files", tags=["Files"])
ERRORS = {code: {"model": ErrorResponse} for code in (400, 401, 413, 500)}
USERNAME_DOC = "Username (cartella primo livello), deve coincidere con la public key"
NAMESPACE_DOC = "Sottocartella opzionale"
UploadResponse = Union[FileUploadResponse, FilesUploadResponse]

# ============================================================================
# Helpers
# ============================================================================
async def _upload(request: Request, pipeline: UploadPipeline, authorization: Optional[str],
                  username: str, namespace: Optional[str]) -> UploadResponse:
    """
    Campo `file` (singolo, con `name` opzionale per rinominare) oppure
    `files` ripetuto (1..10 file, nomi originali).
    """
    async with request.form() as form:
        batch = form.getlist("files")
        if batch:
            written = await run_in_threadpool(
                pipeline.run_batch, authorization, username, batch, username, namespace
            )
            return FilesUploadResponse(files=written)

        name = form.get("name")
        path = await run_in_threadpool(
            pipeline.run_single, authorization, username, form.get("file"), username, namespace,
            file_name=name if isinstance(name, str) else None,
        )
        return FileUploadResponse(path=path)

# ============================================================================
# Routes
# ============================================================================
@router.post("/{username}", response_model=UploadResponse, responses=ERRORS)
async def upload_user_files(request: Request,
                            username: str = FPath(..., description=USERNAME_DOC),
                            authorization: Optional[str] = Header(None),
                            pipeline: UploadPipeline = Depends(get_files_pipeline)):
    return await _upload(request, pipeline, authorization, username, None)

@router.post("/{username}/{namespace}", response_model=UploadResponse, responses=ERRORS)
async def upload_namespace_files(request: Request,
                                 username: str = FPath(..., description=USERNAME_DOC),
                                 namespace: str = FPath(..., description=NAMESPACE_DOC),
                                 authorization: Optional[str] = Header(None),
                                 pipeline: UploadPipeline = Depends(get_files_pipeline)):
    return await _upload(request, pipeline, authorization, username, namespace)
