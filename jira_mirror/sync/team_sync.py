"""
Team Synchronizer Module
Mirrors Jira teams into the teams table.
"""

from typing import Dict, List, Optional

from sqlalchemy import and_

from jira_mirror.database.models import Team
from jira_mirror.sync.base import MAPPING_ERRORS, BaseSynchronizer
from jira_mirror.utils.helpers import safe_get, sanitize_string, to_int
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


class TeamSynchronizer(BaseSynchronizer):
    """Mirrors remote teams, deactivating teams that disappear."""

    def sync_teams(self) -> int:
        """
        Mirror the remote team list.

        Returns:
            Number of teams synced
        """
        logger.info("Syncing teams")

        payload = self.client.list_teams()
        if payload is None:
            logger.warning("No team data returned")
            return 0

        remote_teams = self._team_items(payload)
        if remote_teams is None:
            logger.error("Unexpected team payload, treating as empty")
            return 0

        self._store_raw('teams', remote_teams, len(remote_teams))

        rows = []
        for remote in remote_teams:
            try:
                rows.append(self._map_team(remote))
            except MAPPING_ERRORS as e:
                logger.warning(f"Skipping team {remote!r:.80}: {e}")

        synced = self._upsert_batch(Team, rows, key='team_id', label='teams')

        if remote_teams and not rows:
            logger.warning(f"None of {len(remote_teams)} remote teams could be mapped, skipping deactivation")
        else:
            self._deactivate_missing([row['team_id'] for row in rows])

        logger.info(f"Synced {synced} teams")
        return synced

    def _deactivate_missing(self, seen: List[str]) -> None:
        """Deactivate active teams whose id was not in the fetch."""
        with self.db.session_scope() as session:
            deactivated = session.query(Team).filter(
                and_(Team.is_active.is_(True), Team.team_id.notin_(seen))
            ).update({Team.is_active: False}, synchronize_session=False)
        if deactivated:
            logger.info(f"Deactivated {deactivated} teams no longer present remotely")

    @staticmethod
    def _team_items(payload) -> Optional[List[Dict]]:
        """Extract the team list, or None when the payload has an unexpected shape."""
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, dict):
            return None
        items = payload.get('values') or payload.get('teams') or []
        return items if isinstance(items, list) else None

    def _map_team(self, remote: Dict) -> Dict:
        """Map a remote team to team column values."""
        team_id = remote.get('id') or remote.get('teamId')
        if team_id is None:
            raise ValueError("team has no id")

        name = remote.get('title') or remote.get('name') or remote.get('displayName')
        if not name:
            raise ValueError("team has no name")

        member_count = to_int(remote.get('memberCount'))
        if member_count is None:
            member_count = len(remote.get('members') or [])

        return {
            'team_id': str(team_id),
            'team_name': sanitize_string(name, max_length=255),
            'description': sanitize_string(remote.get('description')),
            'lead_account_id': safe_get(remote, 'lead', 'accountId'),
            'lead_display_name': safe_get(remote, 'lead', 'displayName'),
            'member_count': member_count,
            'is_active': True,
        }
