from __future__ import annotations
from typing import List
from pydantic import BaseModel, Field

class ErrorResponse(BaseModel):
    ok: bool = Field(False)
    error: str = Field(..., description="Messaggio leggibile")

class DbUploadResponse(BaseModel):
    ok: bool = Field(True)
    name: str = Field(..., description="Nome del file db scritto")

class FileUploadResponse(BaseModel):
    ok: bool = Field(True)
    path: str = Field(..., description="Path relativo alla root dei file")

class FilesUploadResponse(BaseModel):
    ok: bool = Field(True)
    files: List[str] = Field(..., description="Path relativi scritti, in ordine")
