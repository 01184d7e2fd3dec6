"""
Board Synchronizer Module
Mirrors the remote board set, including reactivation and deactivation.
"""

import re
from typing import Dict, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jira_mirror.database.models import Board
from jira_mirror.database.queries import MirrorQueries
from jira_mirror.sync.base import MAPPING_ERRORS, BaseSynchronizer, assign_changed
from jira_mirror.sync.pagination import FetchResult, paginate
from jira_mirror.utils.helpers import safe_get, sanitize_string, to_int, to_json_text
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_PROJECT_KEY = 'UNKNOWN'
BOARD_TYPES = ('scrum', 'kanban', 'simple')

_PROJECT_KEY_RE = re.compile(r'^[A-Z][A-Z0-9]*$')
_PREFIX_SPLIT_RE = re.compile(r'\s*[-:]\s*')


class BoardUpsertError(Exception):
    """Raised when a board can be neither inserted nor found after a key collision."""


def _looks_like_project_key(candidate: str) -> bool:
    return 2 <= len(candidate) <= 10 and bool(_PROJECT_KEY_RE.match(candidate))


def extract_project_key_from_name(name: Optional[str]) -> str:
    """
    Guess a project key from a board name.

    Tries a "KEY - Name" or "KEY: Name" prefix, then the first word, then the
    uppercase letters of the name. Best effort only.

    Args:
        name: Board name

    Returns:
        Project key, or UNKNOWN when nothing fits
    """
    if not name or not name.strip():
        return UNKNOWN_PROJECT_KEY

    name = name.strip()

    if ' - ' in name or ': ' in name:
        prefix = _PREFIX_SPLIT_RE.split(name, maxsplit=1)[0].strip().upper()
        if _looks_like_project_key(prefix):
            return prefix

    first_word = name.split()[0].upper()
    if _looks_like_project_key(first_word):
        return first_word

    capitals = re.sub(r'[^A-Z]', '', name)
    if 2 <= len(capitals) <= 6:
        return capitals

    return UNKNOWN_PROJECT_KEY


def resolve_project_key(board: Dict) -> str:
    """
    Resolve a remote board's project key.

    Uses location.projectKey, then location.key, then falls back to the name.
    """
    for field in ('projectKey', 'key'):
        key = safe_get(board, 'location', field)
        if isinstance(key, str) and key.strip():
            return key.strip()
    return extract_project_key_from_name(board.get('name'))


def normalize_board_type(value: Optional[str]) -> str:
    """Lowercase the remote board type, treating anything unrecognised as simple."""
    board_type = str(value or '').strip().lower()
    return board_type if board_type in BOARD_TYPES else 'simple'


class BoardSynchronizer(BaseSynchronizer):
    """Mirrors remote boards into the boards table."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.last_fetch: Optional[FetchResult] = None

    def sync_boards(self) -> int:
        """
        Mirror the full remote board set.

        Boards seen in the fetch are inserted or merged (and reactivated if
        they were inactive). Active local boards missing from a complete
        fetch are deactivated. A fetch cut short by a failure or a safety
        cap deactivates nothing.

        Returns:
            Number of boards processed
        """
        logger.info("Syncing boards")

        result = paginate(
            self.client.list_boards,
            items_key='values',
            page_size=self.page_size,
            max_pages=self.max_pages,
            max_items=self.max_items,
            label='boards'
        )
        self.last_fetch = result
        self._store_raw('boards', result.items, len(result.items))

        seen: Set[int] = set()
        processed = 0

        for remote in result.items:
            external_id = to_int(remote.get('id')) if isinstance(remote, dict) else None
            if external_id is not None:
                seen.add(external_id)

            try:
                data = self._map_board(remote)
            except MAPPING_ERRORS as e:
                logger.warning(f"Skipping board {external_id}: {e}")
                continue

            try:
                self._upsert_board(data)
                processed += 1
            except (SQLAlchemyError, BoardUpsertError) as e:
                logger.error(f"Failed to persist board {external_id}: {e}")

        if result.complete:
            deactivated = self._deactivate_missing(seen)
            if deactivated:
                logger.info(f"Deactivated {deactivated} boards no longer present remotely")
        else:
            logger.warning(
                f"Board fetch incomplete ({result.stop_reason}), skipping deactivation"
            )

        logger.info(f"Synced {processed} boards")
        return processed

    def _map_board(self, remote: Dict) -> Dict:
        """Map a remote board to board column values."""
        external_id = to_int(remote.get('id'))
        if not external_id or external_id <= 0:
            raise ValueError(f"invalid board id {remote.get('id')!r}")

        name = sanitize_string((remote.get('name') or '').strip(), max_length=255)
        if not name:
            raise ValueError("board has no name")

        board_type = normalize_board_type(remote.get('type'))

        return {
            'external_id': external_id,
            'name': name,
            'project_key': resolve_project_key(remote)[:50],
            'board_type': board_type,
            'has_sprints': board_type == 'scrum',
        }

    # ========================================
    # Upsert
    # ========================================

    def _find_board(self, session: Session, external_id: int) -> Optional[Board]:
        return MirrorQueries(session).get_board(external_id)

    @staticmethod
    def _has_local_sprints(session: Session, external_id: int) -> bool:
        # Kanban and simple boards can have sprints enabled; mirrored sprints are proof
        return bool(MirrorQueries(session).get_sprint_ids_for_board(external_id))

    def _remote_has_sprints(self, board_id: int) -> bool:
        """Ask the sprint endpoint whether a board carries any sprints."""
        payload = self.client.list_sprints(board_id)
        values = payload.get('values') if isinstance(payload, dict) else None
        return isinstance(values, list) and len(values) > 0

    def _merge_board(self, session: Session, board: Board, data: Dict) -> None:
        """Merge remote values into an existing board, reactivating it if needed."""
        assign_changed(board, {
            'name': data['name'],
            'project_key': data['project_key'],
            'board_type': data['board_type'],
            'has_sprints': data['has_sprints'] or self._has_local_sprints(session, board.external_id),
        })
        if not board.is_active:
            logger.info(f"Reactivating board {board.external_id} ({board.name})")
            board.is_active = True

    def _upsert_board(self, data: Dict) -> str:
        """
        Insert or merge one board.

        A uniqueness violation on insert means another run inserted the
        board first; the row is re-read and merged instead.

        Returns:
            'inserted' or 'updated'
        """
        external_id = data['external_id']

        with self.db.session_scope() as session:
            board = self._find_board(session, external_id)
            if board is not None:
                self._merge_board(session, board, data)
                return 'updated'

        try:
            with self.db.session_scope() as session:
                session.add(Board(is_active=True, sprint_count=0, **data))
            return 'inserted'
        except IntegrityError:
            logger.info(f"Board {external_id} was inserted concurrently, updating instead")

        with self.db.session_scope() as session:
            board = self._find_board(session, external_id)
            if board is None:
                raise BoardUpsertError(f"Board {external_id} missing after insert collision")
            self._merge_board(session, board, data)
        return 'updated'

    def _deactivate_missing(self, seen: Set[int]) -> int:
        """Deactivate active boards whose id was not in the fetch."""
        deactivated = 0
        with self.db.session_scope() as session:
            for board in MirrorQueries(session).get_active_boards():
                if board.external_id not in seen:
                    logger.info(f"Deactivating board {board.external_id} ({board.name})")
                    board.is_active = False
                    deactivated += 1
        return deactivated

    # ========================================
    # Board Configuration
    # ========================================

    def sync_board_configuration(self, board_id: int) -> bool:
        """
        Enrich a board with its remote configuration.

        Args:
            board_id: Jira board id

        Returns:
            True if the board row was updated from a configuration payload
        """
        config = self.client.get_board_configuration(board_id)
        if config is None:
            return False

        self._store_raw('board_config', config, 1, board_id=board_id)

        board_type = normalize_board_type(config.get('type')) if config.get('type') else None

        values = {
            'board_location': sanitize_string(
                safe_get(config, 'location', 'displayName') or safe_get(config, 'location', 'name'),
                max_length=255
            ),
            'filter_id': to_int(safe_get(config, 'filter', 'id')),
            'can_edit': config.get('canEdit') if isinstance(config.get('canEdit'), bool) else None,
            'sub_query': safe_get(config, 'subQuery', 'query'),
            'column_config': to_json_text(config.get('columnConfig')),
            'estimation_config': to_json_text(config.get('estimation')),
            'ranking_config': to_json_text(config.get('ranking')),
        }
        if board_type:
            values['board_type'] = board_type
            values['has_sprints'] = board_type == 'scrum' or self._remote_has_sprints(board_id)

        with self.db.session_scope() as session:
            board = self._find_board(session, board_id)
            if board is None:
                logger.warning(f"Board {board_id} not found, configuration ignored")
                return False
            if board_type and not values['has_sprints']:
                values['has_sprints'] = self._has_local_sprints(session, board_id)
            if assign_changed(board, values):
                logger.debug(f"Updated configuration for board {board_id}")
        return True
