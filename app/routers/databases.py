from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, Header, Path as FPath, Request
from starlette.concurrency import run_in_threadpool

from app.models.responses import DbUploadResponse, ErrorResponse
from app.routers.deps import get_db_pipeline
from app.services.uploads import UploadPipeline

router = APIRouter(prefix="/db", tags=["Databases"])
ERRORS = {code: {"model": ErrorResponse} for code in (400, 401, 413, 500)}

@router.post("/{user_id}/{db_name}", response_model=DbUploadResponse, responses=ERRORS)
async def upload_db(request: Request,
                    user_id: str = FPath(..., description="ID utente, deve coincidere con la public key"),
                    db_name: str = FPath(..., description="Nome del database"),
                    authorization: Optional[str] = Header(None),
                    pipeline: UploadPipeline = Depends(get_db_pipeline)):
    """Carica il file db in `<root>/<user_id>-<db_name>` (sovrascrive)."""
    db_file_name = f"{user_id}-{db_name}".strip()
    async with request.form() as form:
        name = await run_in_threadpool(
            pipeline.run_single, authorization, user_id, form.get("file"), file_name=db_file_name
        )
    return DbUploadResponse(name=name)
