"""Pydantic models for position reporting-line endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.services.hierarchy_integrity import ProposedChange


class ReportingLineChange(BaseModel):
    """One proposed reassignment."""

    position_id: UUID = Field(..., description="Position being reassigned")
    new_supervisor_id: Optional[UUID] = Field(
        None,
        description="New direct supervisor position (null makes the position a root)"
    )
    code: Optional[str] = Field(None, max_length=20, description="Display code for diagnostics")

    def to_proposed_change(self) -> ProposedChange:
        return ProposedChange(
            position_id=self.position_id,
            new_supervisor_id=self.new_supervisor_id,
            code=self.code,
        )


class ReportingLineBatchRequest(BaseModel):
    """Reassignments to validate or apply together."""

    changes: List[ReportingLineChange] = Field(
        ...,
        min_length=1,
        description="Reassignments evaluated as one unit"
    )
    reason: Optional[str] = Field(None, max_length=500, description="Reason for the change")

    @field_validator("changes")
    @classmethod
    def validate_unique_positions(cls, v: List[ReportingLineChange]) -> List[ReportingLineChange]:
        """Each position may be reassigned once per batch."""
        seen = set()
        for change in v:
            if change.position_id in seen:
                raise ValueError(f"Position {change.position_id} appears more than once")
            seen.add(change.position_id)
        return v

    def to_proposed_changes(self) -> List[ProposedChange]:
        return [change.to_proposed_change() for change in self.changes]


class CircularReferenceVerdict(BaseModel):
    """Cycle-check verdict for one reassignment."""

    position_id: UUID
    is_circular: bool = False
    chain: List[UUID] = Field(default_factory=list, description="Positions visited, new supervisor first")
    chain_codes: List[str] = Field(default_factory=list, description="Display codes of the chain")
    rendered_chain: Optional[str] = Field(None, description="Diagnostic path, set when circular")


class HierarchyIssueResponse(BaseModel):
    """Validation error or warning."""

    code: str
    message: str
    position_id: Optional[UUID] = None
    details: Optional[Dict[str, Any]] = None


class ReportingLineValidationResponse(BaseModel):
    """Result of validating a reassignment batch."""

    is_valid: bool = Field(default=True)
    circular_dependency_detected: bool = Field(default=False)
    errors: List[HierarchyIssueResponse] = Field(default_factory=list)
    warnings: List[HierarchyIssueResponse] = Field(default_factory=list)
    results: List[CircularReferenceVerdict] = Field(default_factory=list)


class PositionHierarchyResponse(BaseModel):
    """A position with its reporting line."""

    id: UUID
    code: str
    title: str
    reports_to_position_id: Optional[UUID] = None
    hierarchy_path: List[str] = Field(default_factory=list, description="Codes from the root down")
    hierarchy_level: int = Field(default=1, description="Level in hierarchy (1 = root)")
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReportingLineUpdateResponse(BaseModel):
    """Result of committing a reassignment batch."""

    updated_count: int
    positions: List[PositionHierarchyResponse] = Field(default_factory=list)
    warnings: List[HierarchyIssueResponse] = Field(default_factory=list)


class HierarchyDistanceResponse(BaseModel):
    """Supervisor hops between a position and a candidate supervisor."""

    position_id: UUID
    supervisor_id: UUID
    distance: int = Field(..., description="Hops walked (capped at max_depth)")
    max_depth: int
    reached_max_depth: bool = Field(
        default=False,
        description="True when the walk stopped at max_depth"
    )
