"""API endpoints for position reporting-line administration."""

import uuid
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.config.settings import get_settings
from src.database.database import get_db
from src.models.position import Position
from src.schemas.position_hierarchy import (
    CircularReferenceVerdict,
    HierarchyDistanceResponse,
    HierarchyIssueResponse,
    PositionHierarchyResponse,
    ReportingLineBatchRequest,
    ReportingLineUpdateResponse,
    ReportingLineValidationResponse,
)
from src.services.position_reassignment_service import (
    HierarchyIssue,
    PositionReassignmentService,
)
from src.utils.auth import (
    HIERARCHY_EDITOR_ROLES,
    CurrentUser,
    UserRole,
    get_mock_current_user,
)
from src.utils.errors import APIError, ForbiddenError


# =============================================================================
# Dependency Injection
# =============================================================================

def get_reassignment_service(
    session: Annotated[Session, Depends(get_db)],
) -> PositionReassignmentService:
    """Get position reassignment service instance."""
    return PositionReassignmentService(session)


def get_current_user(
    request: Request,
    x_user_id: Annotated[Optional[str], Header(alias="X-User-ID")] = None,
    x_user_role: Annotated[Optional[str], Header(alias="X-User-Role")] = None,
) -> CurrentUser:
    """Get current user from request headers."""
    user_id = None
    if x_user_id:
        try:
            user_id = uuid.UUID(x_user_id)
        except ValueError:
            pass

    roles = [UserRole.ADMIN]  # Default to admin for this admin endpoint
    if x_user_role:
        try:
            roles = [UserRole(x_user_role)]
        except ValueError:
            pass

    return get_mock_current_user(
        user_id=user_id,
        roles=roles,
    )


def require_hierarchy_editor(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require admin or HR manager role."""
    if not current_user.can_edit_hierarchy:
        raise ForbiddenError(
            message="Admin or HR Manager role required",
            details={"required_roles": [r.value for r in HIERARCHY_EDITOR_ROLES]},
        )

    return current_user


# =============================================================================
# Helper Functions
# =============================================================================

def _issue_responses(issues: List[HierarchyIssue]) -> List[HierarchyIssueResponse]:
    return [
        HierarchyIssueResponse(
            code=issue.code.value,
            message=issue.message,
            position_id=issue.position_id,
            details=issue.details,
        )
        for issue in issues
    ]


def _position_response(position: Position, hierarchy_path: List[str]) -> PositionHierarchyResponse:
    return PositionHierarchyResponse(
        id=position.id,
        code=position.code,
        title=position.title,
        reports_to_position_id=position.reports_to_position_id,
        hierarchy_path=hierarchy_path,
        hierarchy_level=max(len(hierarchy_path), 1),
        updated_at=position.updated_at,
    )


# =============================================================================
# Router Setup
# =============================================================================

position_hierarchy_router = APIRouter(
    prefix="/api/admin/positions",
    tags=["Admin - Position Hierarchy"],
)


# =============================================================================
# Endpoints
# =============================================================================

@position_hierarchy_router.post(
    "/reporting-lines/validate",
    response_model=ReportingLineValidationResponse,
    summary="Validate Reporting Lines",
    description="Check proposed reassignments for circular reporting without saving them.",
)
async def validate_reporting_lines(
    request: ReportingLineBatchRequest,
    current_user: Annotated[CurrentUser, Depends(require_hierarchy_editor)],
    service: Annotated[PositionReassignmentService, Depends(get_reassignment_service)],
) -> ReportingLineValidationResponse:
    """
    Validate a batch of proposed reassignments.

    - All changes are evaluated together against the projected hierarchy
    - Returns a verdict per position with the chain walked
    - Nothing is written
    """
    separator = get_settings().hierarchy.chain_separator
    result = service.validate_reassignments(request.to_proposed_changes())

    return ReportingLineValidationResponse(
        is_valid=result.is_valid,
        circular_dependency_detected=result.circular_dependency_detected,
        errors=_issue_responses(result.errors),
        warnings=_issue_responses(result.warnings),
        results=[
            CircularReferenceVerdict(
                position_id=position_id,
                is_circular=verdict.is_circular,
                chain=verdict.chain,
                chain_codes=verdict.chain_codes,
                rendered_chain=verdict.render_chain(separator) if verdict.is_circular else None,
            )
            for position_id, verdict in result.results.items()
        ],
    )


@position_hierarchy_router.put(
    "/reporting-lines",
    response_model=ReportingLineUpdateResponse,
    summary="Update Reporting Lines",
    description="Apply a batch of reassignments atomically.",
)
async def update_reporting_lines(
    request: ReportingLineBatchRequest,
    current_user: Annotated[CurrentUser, Depends(require_hierarchy_editor)],
    service: Annotated[PositionReassignmentService, Depends(get_reassignment_service)],
) -> ReportingLineUpdateResponse:
    """
    Apply a batch of reassignments.

    - Rejects the whole batch if any change would create a circular reporting line
    - Commits every change in one transaction otherwise
    - Returns updated positions with their hierarchy paths
    - Logs the acting user and the stated reason
    """
    applied = service.apply_reassignments(
        request.to_proposed_changes(),
        changed_by=current_user.id,
        reason=request.reason,
    )
    paths = service.get_hierarchy_paths([p.id for p in applied.positions])

    return ReportingLineUpdateResponse(
        updated_count=len(applied.positions),
        positions=[
            _position_response(position, paths.get(position.id, []))
            for position in applied.positions
        ],
        warnings=_issue_responses(applied.warnings),
    )


@position_hierarchy_router.get(
    "/{position_id}/hierarchy-distance",
    response_model=HierarchyDistanceResponse,
    summary="Get Hierarchy Distance",
    description="Count supervisor hops from a position up to a candidate supervisor.",
)
async def get_hierarchy_distance(
    position_id: uuid.UUID,
    supervisor_id: Annotated[uuid.UUID, Query(description="Candidate supervisor position")],
    current_user: Annotated[CurrentUser, Depends(require_hierarchy_editor)],
    service: Annotated[PositionReassignmentService, Depends(get_reassignment_service)],
    max_depth: Annotated[Optional[int], Query(ge=1, le=100, description="Hop limit")] = None,
) -> HierarchyDistanceResponse:
    """
    Get the number of supervisor hops between two positions.

    The walk stops at the supervisor, at the top of the branch, or at
    max_depth, whichever comes first. A value is returned even when the
    supervisor is not above the position.
    """
    limit = max_depth or get_settings().hierarchy.max_depth
    distance = service.get_hierarchy_distance(position_id, supervisor_id, max_depth=limit)

    return HierarchyDistanceResponse(
        position_id=position_id,
        supervisor_id=supervisor_id,
        distance=distance,
        max_depth=limit,
        reached_max_depth=distance >= limit,
    )


# =============================================================================
# Exception Handler
# =============================================================================

async def position_hierarchy_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors for position hierarchy endpoints."""
    response = exc.to_response()
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
    )
