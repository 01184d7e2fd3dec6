"""
Sync Module
Board, sprint, issue and team synchronizers and the orchestrator that sequences them.
"""

from .board_sync import BoardSynchronizer, BoardUpsertError
from .issue_sync import IssueSynchronizer
from .orchestrator import (
    BoardSynchronizationSummary,
    SyncOrchestrator,
    SynchronizationSummary
)
from .pagination import FetchResult, paginate
from .sprint_sync import SprintSynchronizer
from .team_sync import TeamSynchronizer

__all__ = [
    'BoardSynchronizer',
    'BoardUpsertError',
    'IssueSynchronizer',
    'BoardSynchronizationSummary',
    'SyncOrchestrator',
    'SynchronizationSummary',
    'FetchResult',
    'paginate',
    'SprintSynchronizer',
    'TeamSynchronizer'
]
