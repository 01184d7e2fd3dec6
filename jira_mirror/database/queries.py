"""
Database Query Helpers Module
Provides lookups shared by the synchronizers and the API.
"""

from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from jira_mirror.database.models import Board, Sprint, SyncRun


class MirrorQueries:
    """Query helper functions for the mirrored tables."""

    def __init__(self, session: Session):
        """Initialize with database session."""
        self.session = session

    # ========================================
    # Board Queries
    # ========================================

    def get_board(self, external_id: int) -> Optional[Board]:
        """Get a board by its Jira id."""
        return self.session.query(Board).filter(Board.external_id == external_id).first()

    def get_active_boards(self) -> List[Board]:
        """Get all active boards ordered by Jira id."""
        return (
            self.session.query(Board)
            .filter(Board.is_active.is_(True))
            .order_by(Board.external_id)
            .all()
        )

    def get_inactive_boards(self) -> List[Board]:
        """Get all deactivated boards."""
        return (
            self.session.query(Board)
            .filter(Board.is_active.is_(False))
            .order_by(Board.external_id)
            .all()
        )

    def get_board_counts(self) -> Dict[str, int]:
        """Count active and inactive boards."""
        rows = (
            self.session.query(Board.is_active, func.count(Board.id))
            .group_by(Board.is_active)
            .all()
        )
        counts = {'active': 0, 'inactive': 0}
        for is_active, count in rows:
            counts['active' if is_active else 'inactive'] = count
        return counts

    # ========================================
    # Sprint Queries
    # ========================================

    def get_sprint_ids_for_board(self, board_id: int) -> List[int]:
        """Get the Jira ids of all sprints owned by a board."""
        rows = self.session.query(Sprint.external_id).filter(Sprint.board_id == board_id).all()
        return [row[0] for row in rows]

    def filter_existing_sprint_ids(self, sprint_ids: Iterable[int]) -> Set[int]:
        """Return the subset of sprint ids that have a local sprint row."""
        ids = {sprint_id for sprint_id in sprint_ids if sprint_id is not None}
        if not ids:
            return set()
        rows = self.session.query(Sprint.external_id).filter(Sprint.external_id.in_(ids)).all()
        return {row[0] for row in rows}

    # ========================================
    # Sync Run Queries
    # ========================================

    def get_recent_runs(self, limit: int = 10) -> List[SyncRun]:
        """Get the most recent synchronization runs."""
        return (
            self.session.query(SyncRun)
            .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
            .limit(limit)
            .all()
        )

    def get_latest_run(self) -> Optional[SyncRun]:
        """Get the most recent synchronization run."""
        runs = self.get_recent_runs(limit=1)
        return runs[0] if runs else None
