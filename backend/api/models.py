"""
Pydantic request/response models for the API.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


# ============== Sessions ==============

class CreateSessionRequest(BaseModel):
    mode: str = "count"  # "count" or "checklist"


class LoadRowsRequest(BaseModel):
    """Rows already parsed by the caller: header -> raw value."""
    rows: List[Dict[str, Any]]
    source: Optional[str] = None


# ============== Checklist ==============

class FilterRequest(BaseModel):
    alternate_key: str = "all"  # all / with / without
    status: Optional[str] = "all"
    category: Optional[str] = "all"


# ============== Count ==============

class ScanRequest(BaseModel):
    """One code, or a burst of codes processed in order."""
    code: Optional[str] = None
    codes: List[str] = Field(default_factory=list)


class QuantityRequest(BaseModel):
    value: Optional[Union[int, str]] = None
