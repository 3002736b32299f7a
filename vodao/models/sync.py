"""Result models returned by the synchronizer."""

from typing import List, Optional
from pydantic import BaseModel, Field


class SyncDetails(BaseModel):
    """Row counts written for the child collections of one event."""

    sessions_created: int = 0
    prices_created: int = 0
    locations_created: int = 0
    images_created: int = 0
    clubs_linked: int = 0


class SyncResult(BaseModel):
    """Outcome of synchronizing one payload."""

    success: bool
    event_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = Field(None, description="Explanation of a successful no-op")
    details: Optional[SyncDetails] = None


class DeactivationResult(BaseModel):
    """Outcome of deactivating an imported event."""

    success: bool
    error: Optional[str] = None


class BatchSyncResult(BaseModel):
    """Outcome of a sequential batch of synchronizations."""

    success: bool
    results: List[SyncResult] = Field(default_factory=list)
    success_count: int = 0
    error_count: int = 0
