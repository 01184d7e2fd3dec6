"""
Sprint Synchronizer Module
Mirrors the sprints of sprint-enabled boards.
"""

from typing import Dict

from jira_mirror.database.models import Sprint
from jira_mirror.sync.base import MAPPING_ERRORS, BaseSynchronizer
from jira_mirror.utils.helpers import sanitize_string, to_int, to_local_datetime
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


class SprintSynchronizer(BaseSynchronizer):
    """Mirrors remote sprints into the sprints table."""

    def sync_sprints_for_board(self, board_id: int, has_sprints_enabled: bool) -> int:
        """
        Mirror the sprints of one board.

        Args:
            board_id: Jira board id
            has_sprints_enabled: Whether the board supports sprints

        Returns:
            Number of sprints synced, 0 for boards without sprints
        """
        if not has_sprints_enabled:
            return 0

        payload = self.client.list_sprints(board_id)
        if payload is None:
            logger.warning(f"No sprint data for board {board_id}")
            return 0

        remote_sprints = (payload.get('values') or []) if isinstance(payload, dict) else None
        if not isinstance(remote_sprints, list):
            logger.error(f"Unexpected sprint payload for board {board_id}, treating as empty")
            return 0

        self._store_raw('sprints', remote_sprints, len(remote_sprints), board_id=board_id)

        rows = []
        for remote in remote_sprints:
            try:
                rows.append(self._map_sprint(remote, board_id))
            except MAPPING_ERRORS as e:
                sprint_id = remote.get('id') if isinstance(remote, dict) else None
                logger.warning(f"Skipping sprint {sprint_id} on board {board_id}: {e}")

        synced = self._upsert_batch(Sprint, rows, label='sprints')
        logger.info(f"Synced {synced} sprints for board {board_id}")
        return synced

    def _map_sprint(self, remote: Dict, board_id: int) -> Dict:
        """Map a remote sprint to sprint column values."""
        external_id = to_int(remote['id'])
        if external_id is None:
            raise ValueError(f"invalid sprint id {remote['id']!r}")

        state = remote.get('state')
        goal = (remote.get('goal') or '').strip()

        return {
            'external_id': external_id,
            'board_id': board_id,
            'name': sanitize_string(remote.get('name') or f"Sprint {external_id}", max_length=255),
            'state': str(state).lower() if state else None,
            'start_date': to_local_datetime(remote.get('startDate'), self.timezone),
            'end_date': to_local_datetime(remote.get('endDate'), self.timezone),
            'complete_date': to_local_datetime(remote.get('completeDate'), self.timezone),
            'goal': goal or None,
        }
