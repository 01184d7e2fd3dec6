"""
Jira REST API Client Module
Read-only access to the Jira Agile board, sprint, issue and team endpoints.
"""

import time
from typing import Dict, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jira_mirror.config_manager import ConfigManager
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)


class JiraAPIError(Exception):
    """Custom exception for Jira API errors."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class JiraClient:
    """
    Jira REST API client with rate limiting, retries and error handling.

    Public methods never raise for transport or API failures: they log the
    problem and return None so callers can treat the result as absent.
    """

    def __init__(self, jira_config: Dict = None, session: requests.Session = None):
        """
        Initialize Jira client.

        Args:
            jira_config: Jira settings. Read from configuration when omitted.
            session: Pre-built HTTP session, mainly for tests.
        """
        if jira_config is None:
            jira_config = ConfigManager().get_jira_config()

        self.base_url = (jira_config.get('url') or '').rstrip('/')
        self.auth_type = (jira_config.get('auth_type') or 'basic').lower()
        self.username = jira_config.get('username') or ''
        self.api_token = jira_config.get('api_token') or ''
        self.bearer_token = jira_config.get('bearer_token') or ''
        self.timeout = jira_config.get('timeout', 30)

        # Rate limiting
        self.requests_per_second = jira_config.get('requests_per_second', 5)
        self.max_retries = jira_config.get('max_retries', 3)
        self.retry_delay = jira_config.get('retry_delay', 1)

        self._last_request_time = 0
        self._session = session or self._create_session()

        logger.info(f"Jira client initialized for {self.base_url}")

    def _create_session(self) -> requests.Session:
        """Create requests session with retry logic."""
        session = requests.Session()

        # The credential is supplied pre-formed, either a bearer token or user/token pair
        if self.auth_type == 'bearer':
            session.headers['Authorization'] = f"Bearer {self.bearer_token}"
        else:
            session.auth = (self.username, self.api_token)

        session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.retry_delay,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=['GET']
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount('https://', adapter)
        session.mount('http://', adapter)

        return session

    def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        if not self.requests_per_second or self.requests_per_second <= 0:
            return

        min_interval = 1.0 / self.requests_per_second
        elapsed = time.time() - self._last_request_time

        if elapsed < min_interval:
            time.sleep(min_interval - elapsed)

        self._last_request_time = time.time()

    def _make_request(self, endpoint: str, params: Dict = None) -> Dict:
        """
        Make a GET request to the Jira API.

        Args:
            endpoint: API endpoint relative to /rest/
            params: Query parameters

        Returns:
            Response JSON

        Raises:
            JiraAPIError: If request fails
        """
        self._rate_limit()

        url = urljoin(f"{self.base_url}/rest/", endpoint)

        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise JiraAPIError(f"Request failed: {str(e)}")

        if response.status_code == 401:
            raise JiraAPIError("Authentication failed. Check your credentials.", 401)
        elif response.status_code == 403:
            raise JiraAPIError("Access forbidden. Check permissions.", 403)
        elif response.status_code == 404:
            raise JiraAPIError(f"Resource not found: {endpoint}", 404)
        elif response.status_code >= 400:
            raise JiraAPIError(f"API error: {response.text[:500]}", response.status_code)

        if not response.text:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise JiraAPIError(f"Invalid JSON from {endpoint}: {e}", response.status_code)

    def _get(self, endpoint: str, params: Dict = None, what: str = None) -> Optional[Dict]:
        """GET an endpoint, logging any failure and returning None instead of raising."""
        try:
            return self._make_request(endpoint, params=params)
        except JiraAPIError as e:
            logger.error(f"Failed to fetch {what or endpoint}: {e.message}")
            return None

    # ========================================
    # Board & Sprint Methods (Agile API)
    # ========================================

    def list_boards(self, start_at: int = 0, max_results: int = 50) -> Optional[Dict]:
        """
        Fetch one page of boards.

        Returns:
            Page dict with 'values', 'total' and 'isLast', or None on failure
        """
        return self._get(
            'agile/1.0/board',
            params={'startAt': start_at, 'maxResults': max_results},
            what=f"boards page at {start_at}"
        )

    def list_sprints(self, board_id: int) -> Optional[Dict]:
        """Fetch the sprints of a board, or None on failure."""
        return self._get(f'agile/1.0/board/{board_id}/sprint', what=f"sprints for board {board_id}")

    def list_issues(self, board_id: int, start_at: int = 0, max_results: int = 50) -> Optional[Dict]:
        """
        Fetch one page of a board's issues.

        Returns:
            Page dict with 'issues' and 'total', or None on failure
        """
        return self._get(
            f'agile/1.0/board/{board_id}/issue',
            params={'startAt': start_at, 'maxResults': max_results},
            what=f"issues for board {board_id} at {start_at}"
        )

    def get_board_configuration(self, board_id: int) -> Optional[Dict]:
        """Fetch board configuration (columns, estimation, ranking), or None on failure."""
        return self._get(
            f'agile/1.0/board/{board_id}/configuration',
            what=f"configuration for board {board_id}"
        )

    # ========================================
    # Team Methods
    # ========================================

    def list_teams(self) -> Optional[Dict]:
        """Fetch all teams, or None on failure."""
        return self._get('teams/1.0/teams', what="teams")

    # ========================================
    # Utility Methods
    # ========================================

    def test_connection(self) -> bool:
        """Test connection to Jira API."""
        try:
            self._make_request('api/2/myself')
            logger.info("Jira connection test successful")
            return True
        except JiraAPIError as e:
            logger.error(f"Jira connection test failed: {e.message}")
            return False
