#!/usr/bin/env python
"""
Run Sync Script
Command-line script for running synchronization operations.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jira_mirror.sync.orchestrator import SyncOrchestrator
from jira_mirror.utils.logger import setup_logging, get_logger


def main():
    """Main entry point for sync script."""
    parser = argparse.ArgumentParser(description='Mirror Jira boards, sprints and issues')
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        '--board',
        type=int,
        metavar='BOARD_ID',
        help='Synchronize the sprints and issues of a single board'
    )
    group.add_argument(
        '--boards-only',
        action='store_true',
        help='Mirror the board list without sprints or issues'
    )
    group.add_argument(
        '--teams',
        action='store_true',
        help='Mirror the team list'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log at DEBUG level'
    )

    args = parser.parse_args()

    setup_logging(level='DEBUG' if args.verbose else None)
    logger = get_logger(__name__)

    try:
        orchestrator = SyncOrchestrator()

        print(f"\n{'='*50}")

        if args.board is not None:
            summary = orchestrator.run_sync_for_board(args.board)
            print(f"Board {args.board} Sync Complete")
            print(f"{'='*50}")
            print(f"Success: {summary.success}")
            print(f"Sprints: {summary.sprint_count}")
            print(f"Issues: {summary.issue_count}")
            print(f"Message: {summary.message}")
            ok = summary.success
        elif args.boards_only:
            count = orchestrator.run_board_only_sync()
            print("Board Sync Complete")
            print(f"{'='*50}")
            print(f"Boards: {count}")
            ok = True
        elif args.teams:
            count = orchestrator.run_team_sync()
            print("Team Sync Complete")
            print(f"{'='*50}")
            print(f"Teams: {count}")
            ok = True
        else:
            summary = orchestrator.run_full_sync()
            print("Full Sync Complete")
            print(f"{'='*50}")
            print(f"Success: {summary.success}")
            print(f"Boards: {summary.board_count}")
            print(f"Sprints: {summary.sprint_count}")
            print(f"Issues: {summary.issue_count}")
            print(f"Message: {summary.message}")
            ok = summary.success

        if not ok:
            sys.exit(1)

    except Exception as e:
        logger.error(f"Sync failed: {e}")
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
