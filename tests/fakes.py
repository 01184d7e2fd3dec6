"""
Test Doubles
In-memory Jira remote and database helpers shared by the sync tests.
"""

from typing import Dict, List, Optional

from jira_mirror.database.connection import DatabaseConnection

SYNC_CONFIG = {
    'page_size': 50,
    'max_pages': 200,
    'max_items': 10000,
    'timezone': 'UTC',
    'store_raw_payloads': True,
    'fetch_board_configuration': False,
}


def make_db() -> DatabaseConnection:
    """Create an empty in-memory database with the full schema."""
    db = DatabaseConnection('sqlite://')
    db.create_all()
    return db


def make_board(board_id: int, name: str = None, board_type: str = 'scrum', project_key: str = None) -> Dict:
    board = {
        'id': board_id,
        'name': name or f"B{board_id} - Board {board_id}",
        'type': board_type,
    }
    if project_key:
        board['location'] = {'projectKey': project_key}
    return board


def make_sprint(sprint_id: int, state: str = 'ACTIVE', name: str = None, goal: str = None) -> Dict:
    return {
        'id': sprint_id,
        'name': name or f"Sprint {sprint_id}",
        'state': state,
        'startDate': '2024-01-01T09:00:00.000Z',
        'endDate': '2024-01-15T17:00:00.000Z',
        'goal': goal,
    }


def make_issue(issue_id: int, key: str = None, **fields) -> Dict:
    base_fields = {
        'summary': f"Issue {issue_id}",
        'issuetype': {'name': 'Story'},
        'status': {'name': 'In Progress'},
        'priority': {'name': 'Medium'},
        'created': '2024-01-02T10:00:00.000+0000',
        'updated': '2024-01-03T10:00:00.000+0000',
    }
    base_fields.update(fields)
    return {
        'id': str(issue_id),
        'key': key or f"PROJ-{issue_id}",
        'fields': base_fields,
    }


class FakeJiraClient:
    """Serves boards, sprints, issues and teams from memory and records every call."""

    def __init__(
        self,
        boards: List[Dict] = None,
        sprints: Dict[int, List[Dict]] = None,
        issues: Dict[int, List[Dict]] = None,
        configurations: Dict[int, Dict] = None,
        teams: Optional[List[Dict]] = None
    ):
        self.boards = list(boards or [])
        self.sprints = dict(sprints or {})
        self.issues = dict(issues or {})
        self.configurations = dict(configurations or {})
        self.teams = teams
        self.failing_issue_boards = set()
        self.connected = True
        self.calls = []

    def list_boards(self, start_at: int = 0, max_results: int = 50) -> Dict:
        self.calls.append(('list_boards', start_at, max_results))
        page = self.boards[start_at:start_at + max_results]
        return {
            'values': page,
            'startAt': start_at,
            'maxResults': max_results,
            'total': len(self.boards),
            'isLast': start_at + max_results >= len(self.boards),
        }

    def list_sprints(self, board_id: int) -> Dict:
        self.calls.append(('list_sprints', board_id))
        return {'values': list(self.sprints.get(board_id, []))}

    def list_issues(self, board_id: int, start_at: int = 0, max_results: int = 50) -> Dict:
        self.calls.append(('list_issues', board_id, start_at, max_results))
        if board_id in self.failing_issue_boards:
            raise ConnectionError(f"issue endpoint for board {board_id} unavailable")
        issues = self.issues.get(board_id, [])
        return {
            'issues': issues[start_at:start_at + max_results],
            'startAt': start_at,
            'maxResults': max_results,
            'total': len(issues),
        }

    def get_board_configuration(self, board_id: int) -> Optional[Dict]:
        self.calls.append(('get_board_configuration', board_id))
        return self.configurations.get(board_id)

    def list_teams(self) -> Optional[Dict]:
        self.calls.append(('list_teams',))
        if self.teams is None:
            return None
        return {'values': list(self.teams)}

    def test_connection(self) -> bool:
        return self.connected

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)
