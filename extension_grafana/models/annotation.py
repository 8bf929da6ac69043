"""
Annotation Models - Grafana annotations and write intents
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Annotation(BaseModel):
    """An annotation as returned by ``GET /api/annotations``."""

    id: int
    dashboard_uid: Optional[str] = Field(None, alias="dashboardUID")
    panel_id: Optional[int] = Field(None, alias="panelId")
    time: int = 0
    time_end: int = Field(0, alias="timeEnd")
    text: str = ""
    tags: List[str] = Field(default_factory=list)
    new_state: Optional[str] = Field(None, alias="newState")
    prev_state: Optional[str] = Field(None, alias="prevState")
    data: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class AnnotationResponse(BaseModel):
    """Response of a create or patch call."""

    message: str = ""
    id: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class AnnotationIntent(BaseModel):
    """What one lifecycle event wants written to Grafana.

    ``need_patch`` distinguishes closing an existing annotation from
    creating a new one; ``annotation_id`` is filled once the annotation
    to patch has been resolved.
    """

    tags: List[str] = Field(default_factory=list)
    time: int = Field(..., description="Start, epoch milliseconds")
    time_end: Optional[int] = Field(None, alias="timeEnd", description="End, epoch milliseconds")
    text: Optional[str] = None
    need_patch: bool = False
    annotation_id: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    def create_body(self) -> Dict[str, Any]:
        """JSON body for ``POST /api/annotations``."""
        return self.model_dump(
            by_alias=True,
            include={"tags", "time", "time_end", "text"},
            exclude_none=True,
        )


class AnnotationOutcome(str, Enum):
    """Result of dispatching one intent."""
    CREATED = "created"
    PATCHED = "patched"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    FAILED = "failed"
    SKIPPED = "skipped"
