from __future__ import annotations
from fastapi import Request

from app.services.uploads import UploadPipeline

def get_db_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.db_pipeline

def get_files_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.files_pipeline
