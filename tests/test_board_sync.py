"""
Unit Tests for Board Synchronization
Tests project key resolution, board upserts, reactivation, deactivation and configuration enrichment.
"""

import json
import unittest
from unittest.mock import patch

from jira_mirror.database.models import Board, JiraData, Sprint
from jira_mirror.sync.board_sync import (
    BoardSynchronizer,
    extract_project_key_from_name,
    normalize_board_type,
    resolve_project_key
)
from tests.fakes import SYNC_CONFIG, FakeJiraClient, make_board, make_db


class TestProjectKeyResolution(unittest.TestCase):
    """Test project key resolution order and name heuristics."""

    def test_location_project_key_wins(self):
        board = {'name': 'OTHER - Board', 'location': {'projectKey': 'PROJ', 'key': 'ALT'}}
        self.assertEqual(resolve_project_key(board), 'PROJ')

    def test_location_key_fallback(self):
        board = {'name': 'OTHER - Board', 'location': {'key': 'ALT'}}
        self.assertEqual(resolve_project_key(board), 'ALT')

    def test_name_used_without_location(self):
        self.assertEqual(resolve_project_key({'name': 'CORE - Platform'}), 'CORE')

    def test_dash_prefix(self):
        self.assertEqual(extract_project_key_from_name('PROJ - Main board'), 'PROJ')

    def test_colon_prefix_is_uppercased(self):
        self.assertEqual(extract_project_key_from_name('abc: Team board'), 'ABC')

    def test_first_word(self):
        self.assertEqual(extract_project_key_from_name('Mobile Team Board'), 'MOBILE')

    def test_first_word_with_digits(self):
        self.assertEqual(extract_project_key_from_name('APP2 sprint board'), 'APP2')

    def test_uppercase_letters_fallback(self):
        self.assertEqual(extract_project_key_from_name('Platform-engineering Board'), 'PB')

    def test_invalid_prefix_falls_through(self):
        # "123" is not a key shape, so the first word and capitals are tried next
        self.assertEqual(extract_project_key_from_name('123 - Release Train'), 'RT')

    def test_unknown_sentinel(self):
        self.assertEqual(extract_project_key_from_name('x'), 'UNKNOWN')
        self.assertEqual(extract_project_key_from_name('123 numbers only'), 'UNKNOWN')
        self.assertEqual(extract_project_key_from_name(''), 'UNKNOWN')
        self.assertEqual(extract_project_key_from_name(None), 'UNKNOWN')

    def test_board_type_normalization(self):
        self.assertEqual(normalize_board_type('SCRUM'), 'scrum')
        self.assertEqual(normalize_board_type('kanban'), 'kanban')
        self.assertEqual(normalize_board_type('something-else'), 'simple')
        self.assertEqual(normalize_board_type(None), 'simple')


class BoardSyncTestCase(unittest.TestCase):
    """Shared setup with an in-memory database."""

    def setUp(self):
        self.db = make_db()
        self.client = FakeJiraClient()
        self.synchronizer = BoardSynchronizer(client=self.client, db=self.db, sync_config=dict(SYNC_CONFIG))

    def tearDown(self):
        self.db.dispose()

    def boards(self):
        with self.db.session_scope() as session:
            return {board.external_id: board for board in session.query(Board).all()}


class TestBoardUpsert(BoardSyncTestCase):
    """Test insert, merge and reactivation."""

    def test_paginated_board_set_is_fully_mirrored(self):
        """125 remote boards become 125 rows after exactly 3 page calls."""
        self.client.boards = [make_board(i) for i in range(1, 126)]

        processed = self.synchronizer.sync_boards()

        self.assertEqual(processed, 125)
        self.assertEqual(len(self.boards()), 125)
        self.assertEqual(self.client.call_count('list_boards'), 3)

    def test_board_fields_are_mapped(self):
        self.client.boards = [
            make_board(1, name='Alpha board', board_type='scrum', project_key='ALPHA'),
            make_board(2, name='OPS - Kanban', board_type='kanban'),
        ]

        self.synchronizer.sync_boards()

        boards = self.boards()
        self.assertEqual(boards[1].project_key, 'ALPHA')
        self.assertEqual(boards[1].board_type, 'scrum')
        self.assertTrue(boards[1].has_sprints)
        self.assertTrue(boards[1].is_active)
        self.assertEqual(boards[2].project_key, 'OPS')
        self.assertFalse(boards[2].has_sprints)

    def test_merge_preserves_identity(self):
        self.client.boards = [make_board(1, name='Old name')]
        self.synchronizer.sync_boards()
        before = self.boards()[1]

        self.client.boards = [make_board(1, name='New name', project_key='NEW')]
        self.synchronizer.sync_boards()
        after = self.boards()[1]

        self.assertEqual(after.id, before.id)
        self.assertEqual(after.created_at, before.created_at)
        self.assertEqual(after.name, 'New name')
        self.assertEqual(after.project_key, 'NEW')

    def test_reappearing_board_is_reactivated(self):
        self.client.boards = [make_board(1), make_board(2)]
        self.synchronizer.sync_boards()

        self.client.boards = [make_board(1)]
        self.synchronizer.sync_boards()
        self.assertFalse(self.boards()[2].is_active)

        self.client.boards = [make_board(1), make_board(2)]
        self.synchronizer.sync_boards()
        self.assertTrue(self.boards()[2].is_active)

    def test_invalid_board_is_skipped(self):
        self.client.boards = [
            {'id': 0, 'name': 'Zero'},
            {'id': 5, 'name': '   '},
            {'name': 'No id'},
            make_board(7),
        ]

        processed = self.synchronizer.sync_boards()

        self.assertEqual(processed, 1)
        self.assertEqual(list(self.boards()), [7])

    def test_raw_payload_written_once_per_fetch(self):
        self.client.boards = [make_board(i) for i in range(1, 126)]

        self.synchronizer.sync_boards()

        with self.db.session_scope() as session:
            rows = session.query(JiraData).filter(JiraData.data_type == 'boards').all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].record_count, 125)
            self.assertEqual(len(json.loads(rows[0].raw_data)), 125)

    def test_insert_collision_falls_back_to_update(self):
        """A board inserted by a concurrent run is merged instead of failing."""
        with self.db.session_scope() as session:
            session.add(Board(external_id=9, name='Inserted elsewhere', project_key='X', is_active=False))

        real_find = self.synchronizer._find_board
        lookups = []

        def find_after_race(session, external_id):
            lookups.append(external_id)
            # The first lookup happens before the other run's insert becomes visible
            if len(lookups) == 1:
                return None
            return real_find(session, external_id)

        self.client.boards = [make_board(9, name='Remote name')]
        with patch.object(self.synchronizer, '_find_board', side_effect=find_after_race):
            processed = self.synchronizer.sync_boards()

        self.assertEqual(processed, 1)
        self.assertEqual(lookups, [9, 9])
        board = self.boards()[9]
        self.assertEqual(board.name, 'Remote name')
        self.assertTrue(board.is_active)
        self.assertEqual(len(self.boards()), 1)


class TestBoardDeactivation(BoardSyncTestCase):
    """Test mirroring of boards that disappear remotely."""

    def test_missing_board_is_deactivated(self):
        self.client.boards = [make_board(1), make_board(2)]
        self.synchronizer.sync_boards()

        self.client.boards = [make_board(1)]
        self.synchronizer.sync_boards()

        boards = self.boards()
        self.assertTrue(boards[1].is_active)
        self.assertFalse(boards[2].is_active)

    def test_incomplete_fetch_deactivates_nothing(self):
        self.client.boards = [make_board(1), make_board(2)]
        self.synchronizer.sync_boards()

        with patch.object(self.client, 'list_boards', return_value=None):
            processed = self.synchronizer.sync_boards()

        self.assertEqual(processed, 0)
        self.assertTrue(all(board.is_active for board in self.boards().values()))

    def test_capped_fetch_deactivates_nothing(self):
        self.client.boards = [make_board(i) for i in range(1, 4)]
        self.synchronizer.sync_boards()

        capped = BoardSynchronizer(
            client=self.client, db=self.db,
            sync_config=dict(SYNC_CONFIG, page_size=1, max_pages=1)
        )
        capped.sync_boards()

        self.assertFalse(capped.last_fetch.complete)
        self.assertTrue(all(board.is_active for board in self.boards().values()))


class TestBoardConfiguration(BoardSyncTestCase):
    """Test enrichment from the board configuration endpoint."""

    def test_configuration_is_merged(self):
        self.client.boards = [make_board(3, board_type='simple')]
        self.synchronizer.sync_boards()
        self.client.configurations[3] = {
            'id': 3,
            'type': 'Scrum',
            'location': {'displayName': 'Platform (PLAT)'},
            'filter': {'id': '10042'},
            'canEdit': True,
            'subQuery': {'query': 'fixVersion in unreleasedVersions()'},
            'columnConfig': {'columns': [{'name': 'To Do'}, {'name': 'Done'}]},
            'estimation': {'type': 'field', 'field': {'fieldId': 'customfield_10016'}},
            'ranking': {'rankCustomFieldId': 10019},
        }

        self.assertTrue(self.synchronizer.sync_board_configuration(3))

        board = self.boards()[3]
        self.assertEqual(board.board_type, 'scrum')
        self.assertTrue(board.has_sprints)
        self.assertEqual(board.board_location, 'Platform (PLAT)')
        self.assertEqual(board.filter_id, 10042)
        self.assertTrue(board.can_edit)
        self.assertEqual(board.sub_query, 'fixVersion in unreleasedVersions()')
        self.assertEqual(json.loads(board.column_config)['columns'][1]['name'], 'Done')

    def test_kanban_board_with_remote_sprints(self):
        self.client.boards = [make_board(4, board_type='kanban')]
        self.synchronizer.sync_boards()
        self.assertFalse(self.boards()[4].has_sprints)

        self.client.sprints[4] = [{'id': 40, 'name': 'Kanban sprint', 'state': 'active'}]
        self.client.configurations[4] = {'type': 'kanban'}
        self.synchronizer.sync_board_configuration(4)

        self.assertEqual(self.boards()[4].board_type, 'kanban')
        self.assertTrue(self.boards()[4].has_sprints)

    def test_local_sprints_keep_board_sprint_enabled(self):
        self.client.boards = [make_board(4, board_type='kanban')]
        self.synchronizer.sync_boards()
        with self.db.session_scope() as session:
            session.add(Sprint(external_id=40, board_id=4, name='Kanban sprint', state='closed'))

        self.synchronizer.sync_boards()

        self.assertTrue(self.boards()[4].has_sprints)

    def test_missing_configuration(self):
        self.client.boards = [make_board(3)]
        self.synchronizer.sync_boards()

        self.assertFalse(self.synchronizer.sync_board_configuration(3))

    def test_configuration_for_unknown_board(self):
        self.client.configurations[99] = {'type': 'kanban'}

        self.assertFalse(self.synchronizer.sync_board_configuration(99))


if __name__ == '__main__':
    unittest.main()
