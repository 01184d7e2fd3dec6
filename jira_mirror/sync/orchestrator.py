"""
Synchronization Orchestrator Module
Sequences board, sprint and issue synchronization, cleans up after removed boards, and records each run.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from jira_mirror.config_manager import ConfigManager
from jira_mirror.database.connection import DatabaseConnection, get_db
from jira_mirror.database.models import Board, Issue, Sprint, SyncRun
from jira_mirror.database.queries import MirrorQueries
from jira_mirror.jira_client import JiraClient
from jira_mirror.sync.board_sync import BoardSynchronizer
from jira_mirror.sync.issue_sync import IssueSynchronizer
from jira_mirror.sync.sprint_sync import SprintSynchronizer
from jira_mirror.sync.team_sync import TeamSynchronizer
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SynchronizationSummary:
    """Outcome of a full synchronization run."""
    success: bool = False
    message: str = ''
    board_count: int = 0
    sprint_count: int = 0
    issue_count: int = 0
    failed_boards: List[int] = field(default_factory=list)
    cleaned_boards: int = 0
    run_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class BoardSynchronizationSummary:
    """Outcome of a single-board synchronization run."""
    board_id: int
    success: bool = False
    message: str = ''
    sprint_count: int = 0
    issue_count: int = 0
    run_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)


class BoardSnapshot(NamedTuple):
    """Board attributes needed to drive the sprint and issue phases."""
    external_id: int
    name: str
    board_type: str
    has_sprints: bool
    is_active: bool


class SyncOrchestrator:
    """
    Runs the synchronization phases in order: boards, sprints, issues, cleanup.

    Runs are not mutually exclusive. Overlapping runs stay correct because
    every write is an idempotent upsert keyed by the Jira id.
    """

    def __init__(
        self,
        client: JiraClient = None,
        db: DatabaseConnection = None,
        sync_config: Dict = None,
        board_synchronizer: BoardSynchronizer = None,
        sprint_synchronizer: SprintSynchronizer = None,
        issue_synchronizer: IssueSynchronizer = None,
        team_synchronizer: TeamSynchronizer = None
    ):
        if sync_config is None:
            sync_config = ConfigManager().get_sync_config()

        self.client = client or JiraClient()
        self.db = db or get_db()
        self.fetch_board_configuration = sync_config.get('fetch_board_configuration', True)

        shared = dict(client=self.client, db=self.db, sync_config=sync_config)
        self.board_synchronizer = board_synchronizer or BoardSynchronizer(**shared)
        self.sprint_synchronizer = sprint_synchronizer or SprintSynchronizer(**shared)
        self.issue_synchronizer = issue_synchronizer or IssueSynchronizer(**shared)
        self.team_synchronizer = team_synchronizer or TeamSynchronizer(**shared)

    # ========================================
    # Full Synchronization
    # ========================================

    def perform_full_synchronization(self) -> SynchronizationSummary:
        """
        Synchronize every board, then its sprints and issues, then clean up.

        A failure on one board is logged and recorded without stopping the
        remaining boards. Each phase commits its own work, so a later failure
        never rolls back an earlier phase.

        Returns:
            SynchronizationSummary
        """
        logger.info("Starting full synchronization")
        summary = SynchronizationSummary()
        started = datetime.utcnow()

        try:
            summary.run_id = self._start_run('full')

            summary.board_count = self.board_synchronizer.sync_boards()
            if summary.board_count == 0:
                summary.message = "No boards synchronized, skipping sprint and issue phases"
                logger.warning(summary.message)
                return summary

            boards = self._active_boards()
            if self.fetch_board_configuration:
                self._enrich_boards(boards, summary)
                boards = self._active_boards()

            for board in boards:
                if not board.has_sprints:
                    continue
                try:
                    count = self.sprint_synchronizer.sync_sprints_for_board(board.external_id, True)
                    self._record_sprint_count(board.external_id, count)
                    summary.sprint_count += count
                except Exception as e:
                    logger.error(f"Sprint sync failed for board {board.external_id}: {e}")
                    self._mark_failed(summary, board.external_id)

            for board in boards:
                try:
                    summary.issue_count += self.issue_synchronizer.sync_issues_for_board(
                        board.external_id, board.has_sprints, board.board_type
                    )
                except Exception as e:
                    logger.error(f"Issue sync failed for board {board.external_id}: {e}")
                    self._mark_failed(summary, board.external_id)

            summary.cleaned_boards = self.cleanup_inactive_boards()

            summary.success = not summary.failed_boards
            if summary.success:
                summary.message = "Synchronization completed successfully"
            else:
                summary.message = (
                    f"Synchronization completed with failures on boards "
                    f"{', '.join(str(b) for b in summary.failed_boards)}"
                )

        except Exception as e:
            logger.error(f"Full synchronization failed: {e}")
            summary.success = False
            summary.message = f"Synchronization failed: {e}"

        finally:
            self._finish_run(summary.run_id, summary.success, summary.message,
                             summary.board_count, summary.sprint_count, summary.issue_count)

        elapsed = (datetime.utcnow() - started).total_seconds()
        logger.info(
            f"Full synchronization finished in {elapsed:.1f}s: {summary.board_count} boards, "
            f"{summary.sprint_count} sprints, {summary.issue_count} issues"
        )
        return summary

    def _enrich_boards(self, boards: List[BoardSnapshot], summary: SynchronizationSummary) -> None:
        for board in boards:
            try:
                self.board_synchronizer.sync_board_configuration(board.external_id)
            except Exception as e:
                logger.error(f"Configuration sync failed for board {board.external_id}: {e}")
                self._mark_failed(summary, board.external_id)

    @staticmethod
    def _mark_failed(summary: SynchronizationSummary, board_id: int) -> None:
        if board_id not in summary.failed_boards:
            summary.failed_boards.append(board_id)

    # ========================================
    # Single Board Synchronization
    # ========================================

    def synchronize_board_data(self, board_id: int) -> BoardSynchronizationSummary:
        """
        Synchronize the sprints and issues of one board.

        Args:
            board_id: Jira board id

        Returns:
            BoardSynchronizationSummary
        """
        logger.info(f"Starting synchronization for board {board_id}")
        summary = BoardSynchronizationSummary(board_id=board_id)

        try:
            summary.run_id = self._start_run('board')

            board = self._board(board_id)
            if board is None:
                summary.message = "Board not found"
                logger.warning(f"Board {board_id} not found")
                return summary
            if not board.is_active:
                summary.message = "Board is inactive"
                logger.warning(f"Board {board_id} is inactive, nothing to synchronize")
                return summary

            if self.fetch_board_configuration:
                self.board_synchronizer.sync_board_configuration(board_id)
                board = self._board(board_id)

            if board.has_sprints:
                summary.sprint_count = self.sprint_synchronizer.sync_sprints_for_board(board_id, True)
                self._record_sprint_count(board_id, summary.sprint_count)

            summary.issue_count = self.issue_synchronizer.sync_issues_for_board(
                board_id, board.has_sprints, board.board_type
            )

            summary.success = True
            summary.message = f"Board {board.name} synchronized successfully"

        except Exception as e:
            logger.error(f"Synchronization failed for board {board_id}: {e}")
            summary.success = False
            summary.message = f"Synchronization failed: {e}"

        finally:
            self._finish_run(summary.run_id, summary.success, summary.message,
                             1 if summary.success else 0, summary.sprint_count, summary.issue_count)

        return summary

    # ========================================
    # Cleanup
    # ========================================

    def cleanup_inactive_boards(self) -> int:
        """
        Delete the sprints and issues of every inactive board.

        Issues on other boards that point at a removed sprint lose their
        sprint link first, then the inactive boards' issues are deleted,
        then their sprints. All in one transaction, so no issue ever
        references a missing sprint.

        Returns:
            Number of inactive boards cleaned
        """
        with self.db.session_scope() as session:
            inactive_ids = [board.external_id for board in MirrorQueries(session).get_inactive_boards()]
            if not inactive_ids:
                return 0

            sprint_ids = [
                row[0] for row in
                session.query(Sprint.external_id).filter(Sprint.board_id.in_(inactive_ids)).all()
            ]

            unlinked = 0
            if sprint_ids:
                unlinked = session.query(Issue).filter(
                    Issue.sprint_id.in_(sprint_ids),
                    or_(Issue.board_id.is_(None), Issue.board_id.notin_(inactive_ids))
                ).update({Issue.sprint_id: None}, synchronize_session=False)

            deleted_issues = session.query(Issue).filter(
                Issue.board_id.in_(inactive_ids)
            ).delete(synchronize_session=False)

            deleted_sprints = session.query(Sprint).filter(
                Sprint.board_id.in_(inactive_ids)
            ).delete(synchronize_session=False)

            session.query(Board).filter(
                Board.external_id.in_(inactive_ids),
                Board.sprint_count != 0
            ).update({Board.sprint_count: 0}, synchronize_session=False)

        if deleted_issues or deleted_sprints or unlinked:
            logger.info(
                f"Cleanup for {len(inactive_ids)} inactive boards: deleted {deleted_issues} issues "
                f"and {deleted_sprints} sprints, unlinked {unlinked} issues on other boards"
            )
        return len(inactive_ids)

    # ========================================
    # Triggers
    # ========================================

    def run_full_sync(self) -> SynchronizationSummary:
        """Run a full synchronization (scheduled, bootstrap or manual)."""
        return self.perform_full_synchronization()

    def run_board_only_sync(self) -> int:
        """
        Mirror the board list only.

        Returns:
            Number of boards processed, 0 on failure
        """
        run_id = None
        count = 0
        success = False
        message = ''
        try:
            run_id = self._start_run('boards')
            count = self.board_synchronizer.sync_boards()
            success = True
            message = f"Synced {count} boards"
        except Exception as e:
            logger.error(f"Board-only synchronization failed: {e}")
            message = f"Board synchronization failed: {e}"
        finally:
            self._finish_run(run_id, success, message, count, 0, 0)
        return count

    def run_sync_for_board(self, board_id: int) -> BoardSynchronizationSummary:
        """Run a synchronization scoped to one board."""
        return self.synchronize_board_data(board_id)

    def run_team_sync(self) -> int:
        """
        Mirror the team list.

        Returns:
            Number of teams synced, 0 on failure
        """
        run_id = None
        count = 0
        success = False
        message = ''
        try:
            run_id = self._start_run('teams')
            count = self.team_synchronizer.sync_teams()
            success = True
            message = f"Synced {count} teams"
        except Exception as e:
            logger.error(f"Team synchronization failed: {e}")
            message = f"Team synchronization failed: {e}"
        finally:
            self._finish_run(run_id, success, message, 0, 0, 0)
        return count

    # ========================================
    # Board Helpers
    # ========================================

    @staticmethod
    def _snapshot(board: Board) -> BoardSnapshot:
        return BoardSnapshot(
            external_id=board.external_id,
            name=board.name,
            board_type=board.board_type,
            has_sprints=bool(board.has_sprints),
            is_active=bool(board.is_active)
        )

    def _active_boards(self) -> List[BoardSnapshot]:
        with self.db.session_scope() as session:
            return [self._snapshot(board) for board in MirrorQueries(session).get_active_boards()]

    def _board(self, board_id: int) -> Optional[BoardSnapshot]:
        with self.db.session_scope() as session:
            board = MirrorQueries(session).get_board(board_id)
            return self._snapshot(board) if board is not None else None

    def _record_sprint_count(self, board_id: int, count: int) -> None:
        """Store the number of sprints synced back onto the board."""
        with self.db.session_scope() as session:
            board = MirrorQueries(session).get_board(board_id)
            if board is not None and board.sprint_count != count:
                board.sprint_count = count

    # ========================================
    # Run Ledger
    # ========================================

    def _start_run(self, run_type: str) -> int:
        with self.db.session_scope() as session:
            run = SyncRun(run_type=run_type, started_at=datetime.utcnow(), status='running')
            session.add(run)
            session.flush()
            return run.id

    def _finish_run(
        self,
        run_id: Optional[int],
        success: bool,
        message: str,
        board_count: int,
        sprint_count: int,
        issue_count: int
    ) -> None:
        if run_id is None:
            return
        try:
            with self.db.session_scope() as session:
                run = session.get(SyncRun, run_id)
                if run is None:
                    return
                run.status = 'completed' if success else 'failed'
                run.completed_at = datetime.utcnow()
                run.board_count = board_count
                run.sprint_count = sprint_count
                run.issue_count = issue_count
                run.message = (message or '')[:1000]
        except SQLAlchemyError as e:
            logger.error(f"Failed to record completion of sync run {run_id}: {e}")
