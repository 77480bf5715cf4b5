from typing import Any

from pydantic import BaseModel


class GenerateRequest(BaseModel):
    # Type, emptiness and length are checked by the gate so the client gets
    # its localized 400 message instead of a 422 validation error.
    input: Any = None


class GenerateResponse(BaseModel):
    formula: str
    explanation: str
    cached: bool
    dev: bool | None = None


class GenerateError(BaseModel):
    error: str
    reason: str | None = None
