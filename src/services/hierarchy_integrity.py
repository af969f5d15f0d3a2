"""Position hierarchy integrity checks.

Validates proposed reporting-line changes against an in-memory snapshot of
positions before they are committed, so the reporting structure never becomes
cyclic. Every function here is pure: callers supply the snapshot, nothing is
read from or written to the database, and no input is mutated.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)


DEFAULT_MAX_DEPTH = 20


# =============================================================================
# Snapshot Types
# =============================================================================

@dataclass
class PositionRecord:
    """A position and its direct-supervisor link, as seen in one snapshot."""

    id: Hashable
    code: Optional[str] = None
    title: Optional[str] = None
    reports_to_position_id: Optional[Hashable] = None
    is_active: bool = True

    @property
    def display_code(self) -> str:
        """Code used in diagnostics, falling back to the identifier."""
        return self.code or str(self.id)

    @classmethod
    def from_model(cls, position: Any) -> "PositionRecord":
        """Build a record from a persisted Position row."""
        return cls(
            id=position.id,
            code=position.code,
            title=position.title,
            reports_to_position_id=position.reports_to_position_id,
            is_active=position.is_active,
        )


@dataclass
class ProposedChange:
    """A requested reassignment of one position to a new supervisor."""

    position_id: Hashable
    new_supervisor_id: Optional[Hashable] = None
    code: Optional[str] = None


@dataclass
class CircularReferenceResult:
    """Verdict of a cycle check plus the walk that produced it."""

    is_circular: bool = False
    chain: List[Hashable] = field(default_factory=list)
    chain_codes: List[str] = field(default_factory=list)

    def render_chain(self, separator: str = " → ") -> str:
        """Render the chain codes as a diagnostic path."""
        return separator.join(self.chain_codes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_circular": self.is_circular,
            "chain": [str(position_id) for position_id in self.chain],
            "chain_codes": list(self.chain_codes),
        }


PositionIndex = Dict[Hashable, PositionRecord]


# =============================================================================
# Position Index
# =============================================================================

def build_position_index(positions: Iterable[PositionRecord]) -> PositionIndex:
    """
    Build an identifier-keyed lookup from a list of position records.

    The snapshot is taken as authoritative and is not checked for internal
    consistency. A later record with an already-seen id replaces the earlier one.
    """
    return {position.id: position for position in positions}


def _display_code(
    position_id: Hashable,
    positions_by_id: PositionIndex,
    fallback: Optional[str] = None,
) -> str:
    position = positions_by_id.get(position_id)
    if position is not None and position.code:
        return position.code
    return fallback or str(position_id)


# =============================================================================
# Single-Change Cycle Detection
# =============================================================================

def detect_circular_reference(
    position_id: Hashable,
    new_supervisor_id: Optional[Hashable],
    positions_by_id: PositionIndex,
    position_code: Optional[str] = None,
) -> CircularReferenceResult:
    """
    Check whether reporting `position_id` to `new_supervisor_id` creates a cycle.

    Walks the supervisor chain upwards from the proposed supervisor. The change
    is circular if the walk reaches the position being moved. Unknown ids are
    treated as roots.

    A walk that revisits a position without reaching `position_id` has run into
    a cycle already present in the snapshot. The walk stops there and the change
    is reported as non-circular.

    Args:
        position_id: Position being reassigned
        new_supervisor_id: Proposed direct supervisor (None makes it a root)
        positions_by_id: Snapshot index
        position_code: Display code for `position_id` when it is not in the index

    Returns:
        CircularReferenceResult with the visited chain
    """
    result = CircularReferenceResult()

    # Making a position a root never creates a cycle
    if new_supervisor_id is None:
        return result

    visited: Set[Hashable] = set()
    current: Optional[Hashable] = new_supervisor_id

    while current is not None:
        if current == position_id:
            result.is_circular = True
            result.chain.append(position_id)
            result.chain_codes.append(
                _display_code(position_id, positions_by_id, position_code)
            )
            return result

        if current in visited:
            logger.warning(
                "Existing reporting cycle at position %s encountered while "
                "checking position %s; walk stopped",
                current,
                position_id,
            )
            return result

        visited.add(current)
        result.chain.append(current)
        result.chain_codes.append(_display_code(current, positions_by_id))

        supervisor = positions_by_id.get(current)
        current = supervisor.reports_to_position_id if supervisor else None

    return result


# =============================================================================
# Batch Projection
# =============================================================================

def project_reporting_lines(
    proposed_changes: Iterable[ProposedChange],
    current_positions: PositionIndex,
) -> PositionIndex:
    """
    Build the next-state index with every proposed change applied.

    Each record is cloned, so `current_positions` is left untouched. A change for
    a position missing from the snapshot is skipped; walks that reach it stop
    there as at a root.
    """
    projected: PositionIndex = {
        position_id: replace(record)
        for position_id, record in current_positions.items()
    }

    for change in proposed_changes:
        record = projected.get(change.position_id)
        if record is not None:
            record.reports_to_position_id = change.new_supervisor_id

    return projected


def detect_circular_references_in_batch(
    proposed_changes: List[ProposedChange],
    current_positions: PositionIndex,
) -> Dict[Hashable, CircularReferenceResult]:
    """
    Validate simultaneous reassignments as one unit.

    All changes are applied to a projected copy of the snapshot first, then each
    change is checked against that projection. Checking each change against the
    current state instead would reject valid reorganizations such as two
    positions trading places in a reporting line.

    Args:
        proposed_changes: Reassignments to apply together
        current_positions: Snapshot index (not modified)

    Returns:
        Dictionary of position id to CircularReferenceResult. When a position
        appears in more than one change, the last change wins.
    """
    projected = project_reporting_lines(proposed_changes, current_positions)

    results: Dict[Hashable, CircularReferenceResult] = {}
    for change in proposed_changes:
        results[change.position_id] = detect_circular_reference(
            change.position_id,
            change.new_supervisor_id,
            projected,
            position_code=change.code,
        )

    return results


# =============================================================================
# Hierarchy Distance
# =============================================================================

def calculate_hierarchy_distance(
    position_id: Hashable,
    supervisor_id: Optional[Hashable],
    positions_by_id: PositionIndex,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """
    Count supervisor hops from `position_id` up to `supervisor_id`.

    The walk follows reporting lines upwards and stops at `supervisor_id`, at a
    position without a supervisor, or after `max_depth` hops. The number of hops
    actually walked is returned. There is no "unrelated" sentinel: when
    `supervisor_id` is not above `position_id` the result is the number of hops
    to the top of the branch (capped at `max_depth`).

    Args:
        position_id: Position to start from
        supervisor_id: Candidate supervisor
        positions_by_id: Snapshot index
        max_depth: Upper bound on hops walked

    Returns:
        Hop count, between 0 and max_depth
    """
    if position_id == supervisor_id:
        return 0

    distance = 0
    current: Optional[Hashable] = position_id

    while distance < max_depth:
        position = positions_by_id.get(current)
        parent_id = position.reports_to_position_id if position else None
        if parent_id is None:
            break

        distance += 1
        if parent_id == supervisor_id:
            break
        current = parent_id

    return distance


def get_reporting_chain(
    position_id: Hashable,
    positions_by_id: PositionIndex,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[PositionRecord]:
    """Get the position and its supervisors up to the root, position first."""
    chain: List[PositionRecord] = []
    visited: Set[Hashable] = set()
    current: Optional[Hashable] = position_id

    while current is not None and len(chain) <= max_depth:
        if current in visited:
            break  # Existing cycle
        visited.add(current)

        position = positions_by_id.get(current)
        if position is None:
            break
        chain.append(position)
        current = position.reports_to_position_id

    return chain
