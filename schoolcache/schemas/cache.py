from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional


class CacheReport(BaseModel):
    total_keys: int
    hits: int
    misses: int
    hit_rate_percent: float
    per_type_key_count: Dict[str, int]
    configured_types: List[str] = []


class CacheStats(CacheReport):
    backend: str
    max_entries: int
    keys: List[str] = []
    timestamp: str


class InvalidateRequest(BaseModel):
    type: str = Field(..., min_length=1, description="Primary cache type to purge")
    user_id: str = Field(..., min_length=1)
    school_id: str = Field(..., min_length=1)
    related_types: List[str] = Field(default_factory=list)


class ManualInvalidationRequest(BaseModel):
    type: Literal["dashboard", "all"]
    user_id: Optional[str] = None
    school_id: Optional[str] = None


class EntityInvalidationRequest(BaseModel):
    type_names: List[str] = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)


class FlushTypeRequest(BaseModel):
    type_names: List[str] = Field(..., min_length=1)


class InvalidationResult(BaseModel):
    deleted: int
