"""Reporting-line reassignment workflow.

Validates a batch of proposed reassignments against a freshly loaded snapshot
of the position hierarchy and, when the whole batch is acceptable, commits all
of it in one transaction.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.config.settings import HierarchySettings, get_settings
from src.data.position_repository import PositionRepository
from src.models.position import Position
from src.services.hierarchy_integrity import (
    CircularReferenceResult,
    PositionIndex,
    ProposedChange,
    calculate_hierarchy_distance,
    detect_circular_references_in_batch,
    get_reporting_chain,
    project_reporting_lines,
)
from src.utils.errors import (
    DatabaseError,
    ValidationError,
    create_circular_reporting_error,
    create_field_error,
    create_not_found_error,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Validation Types
# =============================================================================

class HierarchyIssueCode(str, Enum):
    """Error and warning codes for reporting-line validation."""

    CIRCULAR_REPORTING = "CIRCULAR_REPORTING"
    POSITION_NOT_FOUND = "POSITION_NOT_FOUND"
    SUPERVISOR_NOT_FOUND = "SUPERVISOR_NOT_FOUND"
    EMPTY_BATCH = "EMPTY_BATCH"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    INACTIVE_SUPERVISOR = "INACTIVE_SUPERVISOR"
    HIERARCHY_TOO_DEEP = "HIERARCHY_TOO_DEEP"


@dataclass
class HierarchyIssue:
    """A single validation error or warning."""

    code: HierarchyIssueCode
    message: str
    position_id: Optional[uuid.UUID] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "position_id": str(self.position_id) if self.position_id else None,
            "details": self.details,
        }


@dataclass
class ReassignmentValidationResult:
    """Outcome of validating a batch of reassignments."""

    is_valid: bool = True
    errors: List[HierarchyIssue] = field(default_factory=list)
    warnings: List[HierarchyIssue] = field(default_factory=list)
    results: Dict[uuid.UUID, CircularReferenceResult] = field(default_factory=dict)

    def add_error(
        self,
        code: HierarchyIssueCode,
        message: str,
        position_id: Optional[uuid.UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add an error to the result."""
        self.errors.append(HierarchyIssue(code, message, position_id, details))
        self.is_valid = False

    def add_warning(
        self,
        code: HierarchyIssueCode,
        message: str,
        position_id: Optional[uuid.UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add a warning to the result (doesn't invalidate)."""
        self.warnings.append(HierarchyIssue(code, message, position_id, details))

    @property
    def circular_dependency_detected(self) -> bool:
        return any(result.is_circular for result in self.results.values())

    def circular_chains(self, separator: str = " → ") -> Dict[str, str]:
        """Rendered chains of every circular verdict, keyed by position id."""
        return {
            str(position_id): result.render_chain(separator)
            for position_id, result in self.results.items()
            if result.is_circular
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "results": {
                str(position_id): result.to_dict()
                for position_id, result in self.results.items()
            },
        }


@dataclass
class AppliedReassignments:
    """Positions written by a committed batch and the warnings it raised."""

    positions: List[Position] = field(default_factory=list)
    warnings: List[HierarchyIssue] = field(default_factory=list)


# =============================================================================
# Reassignment Service
# =============================================================================

class PositionReassignmentService:
    """
    Service for changing who reports to whom.

    Provides functionality for:
    - Validating a batch of reassignments as one unit
    - Committing an accepted batch atomically
    - Measuring supervisor distance between two positions
    """

    def __init__(
        self,
        session: Session,
        settings: Optional[HierarchySettings] = None,
    ):
        """Initialize with database session."""
        self.session = session
        self.repository = PositionRepository(session)
        self.settings = settings or get_settings().hierarchy

    def validate_reassignments(
        self,
        changes: List[ProposedChange],
    ) -> ReassignmentValidationResult:
        """
        Validate proposed reassignments against the current hierarchy.

        Args:
            changes: Reassignments to apply together

        Returns:
            ReassignmentValidationResult with per-position verdicts
        """
        result = ReassignmentValidationResult()

        if not changes:
            result.add_error(
                HierarchyIssueCode.EMPTY_BATCH,
                "At least one reassignment is required",
            )
            return result

        if len(changes) > self.settings.max_batch_size:
            result.add_error(
                HierarchyIssueCode.BATCH_TOO_LARGE,
                f"Batch contains {len(changes)} reassignments; "
                f"the maximum is {self.settings.max_batch_size}",
                details={"max_batch_size": self.settings.max_batch_size},
            )
            return result

        # Reload right before validating so the check runs on fresh data
        snapshot = self.repository.load_snapshot()

        self._check_references(changes, snapshot, result)
        if not result.is_valid:
            return result

        result.results = detect_circular_references_in_batch(changes, snapshot)

        for position_id, verdict in result.results.items():
            if verdict.is_circular:
                result.add_error(
                    HierarchyIssueCode.CIRCULAR_REPORTING,
                    f"Circular reporting line: {verdict.render_chain(self.settings.chain_separator)}",
                    position_id,
                    {"chain_codes": list(verdict.chain_codes)},
                )

        if result.is_valid:
            self._check_depth(changes, snapshot, result)

        return result

    def apply_reassignments(
        self,
        changes: List[ProposedChange],
        changed_by: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> AppliedReassignments:
        """
        Validate and commit a batch of reassignments.

        Either every change is written in a single commit or none is.

        Args:
            changes: Reassignments to apply together
            changed_by: User making the change, recorded in the log
            reason: Reason for the change, recorded in the log

        Returns:
            AppliedReassignments with the updated positions and any warnings

        Raises:
            CircularReportingError: If any change would create a cycle
            ValidationError: If the batch is otherwise invalid
            DatabaseError: If the commit fails
        """
        validation = self.validate_reassignments(changes)

        if validation.circular_dependency_detected:
            chains = validation.circular_chains(self.settings.chain_separator)
            logger.info(
                "Rejected reassignment batch of %d change(s): %d circular",
                len(changes),
                len(chains),
            )
            raise create_circular_reporting_error(chains)

        if not validation.is_valid:
            raise ValidationError(
                message=validation.errors[0].message,
                details={"errors": [e.to_dict() for e in validation.errors]},
                field_errors=[
                    create_field_error(
                        f"changes.{e.position_id}" if e.position_id else "changes",
                        e.message,
                        e.code.value.lower(),
                    )
                    for e in validation.errors
                ],
            )

        updated = self.repository.update_reporting_lines(changes)

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to commit reassignment batch: {e}")
            raise DatabaseError(
                message="Failed to save reporting-line changes",
                details={"change_count": len(changes)},
            ) from e

        logger.info(
            "Committed reassignment batch of %d change(s) by %s: %s",
            len(updated),
            changed_by or "unknown user",
            reason or "no reason given",
        )
        return AppliedReassignments(positions=updated, warnings=validation.warnings)

    def get_hierarchy_paths(
        self,
        position_ids: List[uuid.UUID],
    ) -> Dict[uuid.UUID, List[str]]:
        """
        Get the reporting line of each position as display codes, root first.

        Unknown positions map to an empty path.
        """
        snapshot = self.repository.load_snapshot()
        paths: Dict[uuid.UUID, List[str]] = {}

        for position_id in position_ids:
            chain = get_reporting_chain(
                position_id, snapshot, max_depth=self.settings.max_depth
            )
            paths[position_id] = [record.display_code for record in reversed(chain)]

        return paths

    def get_hierarchy_distance(
        self,
        position_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        max_depth: Optional[int] = None,
    ) -> int:
        """
        Count supervisor hops from a position up to a candidate supervisor.

        The value is the number of hops walked; see
        calculate_hierarchy_distance for how unrelated positions are counted.

        Raises:
            NotFoundError: If either position does not exist
        """
        snapshot = self.repository.load_snapshot()
        for pid in (position_id, supervisor_id):
            if pid not in snapshot:
                raise create_not_found_error("Position", pid)

        return calculate_hierarchy_distance(
            position_id,
            supervisor_id,
            snapshot,
            max_depth=max_depth or self.settings.max_depth,
        )

    def _check_references(
        self,
        changes: List[ProposedChange],
        snapshot: PositionIndex,
        result: ReassignmentValidationResult,
    ) -> None:
        """Every moved position and every new supervisor must exist."""
        for change in changes:
            if change.position_id not in snapshot:
                result.add_error(
                    HierarchyIssueCode.POSITION_NOT_FOUND,
                    f"Position {change.code or change.position_id} does not exist",
                    change.position_id,
                )
                continue

            if change.new_supervisor_id is None:
                continue

            if change.new_supervisor_id not in snapshot:
                result.add_error(
                    HierarchyIssueCode.SUPERVISOR_NOT_FOUND,
                    f"Supervisor position {change.new_supervisor_id} does not exist",
                    change.position_id,
                    {"new_supervisor_id": str(change.new_supervisor_id)},
                )
                continue

            supervisor = snapshot[change.new_supervisor_id]
            if not supervisor.is_active:
                result.add_warning(
                    HierarchyIssueCode.INACTIVE_SUPERVISOR,
                    f"Supervisor position {supervisor.display_code} is not active",
                    change.position_id,
                )

    def _check_depth(
        self,
        changes: List[ProposedChange],
        snapshot: PositionIndex,
        result: ReassignmentValidationResult,
    ) -> None:
        """Warn about reporting lines that end up deeper than recommended."""
        projected = project_reporting_lines(changes, snapshot)
        threshold = self.settings.depth_warning_threshold

        for change in changes:
            if change.new_supervisor_id is None:
                continue

            # No target supervisor: the walk runs to the top of the branch
            depth = calculate_hierarchy_distance(
                change.position_id,
                None,
                projected,
                max_depth=self.settings.max_depth,
            )
            if depth >= threshold:
                result.add_warning(
                    HierarchyIssueCode.HIERARCHY_TOO_DEEP,
                    f"Position {snapshot[change.position_id].display_code} would sit "
                    f"{depth} levels below the top of its hierarchy "
                    f"(recommended maximum {threshold})",
                    change.position_id,
                    {"depth": depth, "threshold": threshold},
                )
