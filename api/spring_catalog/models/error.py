"""Error response schema for 404 (unknown project/phase) and 409 (sync already running)."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Single top-level `detail` string, same shape FastAPI uses for HTTPException."""

    detail: str
