"""Position repository for reporting-structure data access."""

import uuid
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.position import Position
from src.services.hierarchy_integrity import (
    PositionIndex,
    PositionRecord,
    ProposedChange,
    build_position_index,
)


class PositionRepository:
    """
    Repository for position data access operations.

    Loads hierarchy snapshots for validation and writes reporting-line
    changes. Never commits; the caller owns the transaction.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    def get_position(self, position_id: uuid.UUID) -> Optional[Position]:
        """Get a single position by ID."""
        return self.session.get(Position, position_id)

    def list_positions(self, include_inactive: bool = True) -> Sequence[Position]:
        """List positions ordered by code."""
        stmt = select(Position)
        if not include_inactive:
            stmt = stmt.where(Position.is_active == True)
        stmt = stmt.order_by(Position.code)

        return self.session.execute(stmt).scalars().all()

    def get_positions_by_ids(self, position_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Position]:
        """Get positions keyed by ID; missing IDs are absent from the result."""
        ids = list(set(position_ids))
        if not ids:
            return {}

        stmt = select(Position).where(Position.id.in_(ids))
        return {position.id: position for position in self.session.execute(stmt).scalars().all()}

    def load_snapshot(self, include_inactive: bool = True) -> PositionIndex:
        """
        Load the reporting structure as an in-memory index.

        Inactive positions are included by default because they can still sit
        in the middle of a reporting line.
        """
        positions = self.list_positions(include_inactive=include_inactive)
        return build_position_index(PositionRecord.from_model(p) for p in positions)

    def update_reporting_lines(self, changes: List[ProposedChange]) -> List[Position]:
        """
        Point each position at its new supervisor.

        Changes for unknown positions are skipped. Nothing is flushed or
        committed here.
        """
        positions = self.get_positions_by_ids(change.position_id for change in changes)

        updated: List[Position] = []
        for change in changes:
            position = positions.get(change.position_id)
            if position is None:
                continue
            position.reports_to_position_id = change.new_supervisor_id
            if position not in updated:
                updated.append(position)

        return updated
