"""Pydantic schemas for API request/response validation."""

from src.schemas.position_hierarchy import (
    CircularReferenceVerdict,
    HierarchyDistanceResponse,
    HierarchyIssueResponse,
    PositionHierarchyResponse,
    ReportingLineBatchRequest,
    ReportingLineChange,
    ReportingLineUpdateResponse,
    ReportingLineValidationResponse,
)

__all__ = [
    # Request schemas
    "ReportingLineBatchRequest",
    "ReportingLineChange",
    # Response schemas
    "CircularReferenceVerdict",
    "HierarchyDistanceResponse",
    "HierarchyIssueResponse",
    "PositionHierarchyResponse",
    "ReportingLineUpdateResponse",
    "ReportingLineValidationResponse",
]
