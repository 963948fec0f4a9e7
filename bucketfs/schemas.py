from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class FileActionRequest(BaseModel):
    path: str
    new_name: Optional[str] = None


class MkdirRequest(BaseModel):
    path: str = ''
    name: str = Field(min_length=1, max_length=1024)


class ApiResponse(BaseModel):
    ok: bool
    message: str
    data: Optional[Any] = None
