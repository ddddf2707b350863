# backend/schemas/common.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Uniform outcome of every stock operation
class ActionResult(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
    errors: Dict[str, List[str]] = Field(default_factory=dict)

    # Machine-readable failure code, used by the HTTP layer to pick a status code
    error_code: Optional[str] = Field(default=None, exclude=True)
