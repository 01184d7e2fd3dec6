"""
Issue Synchronizer Module
Mirrors the issues of a board and links them to their sprint.
"""

from typing import Dict, List, Optional

from jira_mirror.config_manager import DEFAULT_SPRINT_FIELDS, DEFAULT_STORY_POINTS_FIELDS
from jira_mirror.database.models import Issue
from jira_mirror.database.queries import MirrorQueries
from jira_mirror.sync.base import MAPPING_ERRORS, BaseSynchronizer, first_present
from jira_mirror.sync.pagination import paginate
from jira_mirror.sync.sprint_links import resolve_sprint_id
from jira_mirror.utils.helpers import (
    adf_to_text, names_to_json, safe_get, sanitize_string,
    to_decimal, to_int, to_local_datetime
)
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


class IssueSynchronizer(BaseSynchronizer):
    """Mirrors remote issues into the issues table."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sprint_fields: List[str] = self.sync_config.get('sprint_fields') or list(DEFAULT_SPRINT_FIELDS)
        self.story_points_fields: List[str] = (
            self.sync_config.get('story_points_fields') or list(DEFAULT_STORY_POINTS_FIELDS)
        )

    def sync_issues_for_board(self, board_id: int, has_sprints_enabled: bool, board_type: str = None) -> int:
        """
        Mirror the issues of one board.

        Issues are linked to a sprint only on sprint-enabled boards, and only
        when the referenced sprint exists locally.

        Args:
            board_id: Jira board id
            has_sprints_enabled: Whether the board supports sprints
            board_type: Board type, for logging

        Returns:
            Number of issues synced
        """
        logger.info(f"Syncing issues for board {board_id} ({board_type or 'unknown type'})")

        result = paginate(
            lambda offset, limit: self.client.list_issues(board_id, offset, limit),
            items_key='issues',
            page_size=self.page_size,
            max_pages=self.max_pages,
            max_items=self.max_items,
            label=f'issues for board {board_id}'
        )
        self._store_raw('issues', result.items, len(result.items), board_id=board_id)

        if not result.complete:
            logger.warning(
                f"Issue fetch for board {board_id} stopped early ({result.stop_reason}), "
                f"syncing {len(result.items)} issues"
            )

        synced = 0
        for start in range(0, len(result.items), self.page_size):
            batch = result.items[start:start + self.page_size]
            synced += self._sync_batch(batch, board_id, has_sprints_enabled)

        logger.info(f"Synced {synced} issues for board {board_id}")
        return synced

    def _sync_batch(self, batch: List[Dict], board_id: int, has_sprints_enabled: bool) -> int:
        """Map, link and persist one batch of issues."""
        rows = []
        for remote in batch:
            try:
                rows.append(self._map_issue(remote, board_id, has_sprints_enabled))
            except MAPPING_ERRORS as e:
                issue_id = remote.get('key') or remote.get('id') if isinstance(remote, dict) else None
                logger.warning(f"Skipping issue {issue_id} on board {board_id}: {e}")

        if has_sprints_enabled:
            self._drop_unknown_sprints(rows)

        return self._upsert_batch(Issue, rows, label='issues')

    def _drop_unknown_sprints(self, rows: List[Dict]) -> None:
        """Clear sprint links that do not point at a local sprint row."""
        referenced = {row['sprint_id'] for row in rows if row['sprint_id'] is not None}
        if not referenced:
            return

        with self.db.session_scope() as session:
            known = MirrorQueries(session).filter_existing_sprint_ids(referenced)

        for row in rows:
            if row['sprint_id'] is not None and row['sprint_id'] not in known:
                logger.debug(f"Issue {row['issue_key']} references unknown sprint {row['sprint_id']}")
                row['sprint_id'] = None

    # ========================================
    # Field Mapping
    # ========================================

    def _map_issue(self, remote: Dict, board_id: int, has_sprints_enabled: bool) -> Dict:
        """Map a remote issue to issue column values."""
        if remote.get('id') is None:
            raise ValueError("issue has no id")
        issue_key = remote.get('key')
        if not issue_key:
            raise ValueError("issue has no key")

        fields = remote.get('fields') or {}
        timetracking = fields.get('timetracking') or {}

        sprint_id = None
        if has_sprints_enabled:
            sprint_id = resolve_sprint_id(fields, self.sprint_fields)

        return {
            'external_id': str(remote['id']),
            'issue_key': issue_key,
            'board_id': board_id,
            'sprint_id': sprint_id,
            'issue_type': safe_get(fields, 'issuetype', 'name'),
            'status': safe_get(fields, 'status', 'name'),
            'priority': safe_get(fields, 'priority', 'name'),
            'assignee_account_id': self._user_id(fields.get('assignee')),
            'assignee_display_name': safe_get(fields, 'assignee', 'displayName'),
            'reporter_account_id': self._user_id(fields.get('reporter')),
            'reporter_display_name': safe_get(fields, 'reporter', 'displayName'),
            'summary': sanitize_string(fields.get('summary')),
            'description': self._description(fields.get('description')),
            'story_points': to_decimal(first_present(fields, self.story_points_fields)),
            'original_estimate': self._seconds(timetracking, 'originalEstimateSeconds', fields, 'timeoriginalestimate'),
            'remaining_estimate': self._seconds(timetracking, 'remainingEstimateSeconds', fields, 'timeestimate'),
            'time_spent': self._seconds(timetracking, 'timeSpentSeconds', fields, 'timespent'),
            'created_date': to_local_datetime(fields.get('created'), self.timezone),
            'updated_date': to_local_datetime(fields.get('updated'), self.timezone),
            'resolved_date': to_local_datetime(fields.get('resolutiondate'), self.timezone),
            'due_date': to_local_datetime(fields.get('duedate'), self.timezone),
            'labels': names_to_json(fields.get('labels')),
            'components': names_to_json(fields.get('components')),
            'fix_versions': names_to_json(fields.get('fixVersions')),
        }

    @staticmethod
    def _user_id(user: Optional[Dict]) -> Optional[str]:
        # Cloud returns accountId, Server/Data Center returns name
        if not isinstance(user, dict):
            return None
        return user.get('accountId') or user.get('name') or user.get('key')

    @staticmethod
    def _description(value) -> Optional[str]:
        if value is None:
            return None
        text = value if isinstance(value, str) else adf_to_text(value)
        return sanitize_string(text) or None

    @staticmethod
    def _seconds(timetracking: Dict, tracking_key: str, fields: Dict, field_key: str) -> Optional[int]:
        value = to_int(timetracking.get(tracking_key))
        if value is None:
            value = to_int(fields.get(field_key))
        return value
