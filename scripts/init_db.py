#!/usr/bin/env python
"""
Initialize Database Script
Creates the mirror tables (boards, sprints, issues, teams, raw payloads, sync runs) and reports their row counts.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, inspect

from jira_mirror.database.connection import get_db
from jira_mirror.database.models import Base
from jira_mirror.utils.logger import setup_logging, get_logger


def report_tables(db) -> None:
    """Print each mirror table with its current row count."""
    existing = set(inspect(db.engine).get_table_names())

    with db.session_scope() as session:
        for table in Base.metadata.sorted_tables:
            if table.name not in existing:
                print(f"  - {table.name:<12} missing")
                continue
            rows = session.query(func.count()).select_from(table).scalar()
            print(f"  - {table.name:<12} {rows} rows")


def main():
    """Create the schema, optionally dropping the mirrored data first."""
    parser = argparse.ArgumentParser(description='Create the Jira mirror schema')
    parser.add_argument(
        '--drop',
        action='store_true',
        help='Drop all mirror tables first. Every mirrored board, sprint and issue is lost.'
    )
    parser.add_argument(
        '--yes',
        action='store_true',
        help='Skip the confirmation prompt for --drop'
    )
    parser.add_argument(
        '--check',
        action='store_true',
        help='Only report which tables exist, without creating anything'
    )

    args = parser.parse_args()

    setup_logging(to_file=False)
    logger = get_logger(__name__)

    db = get_db()
    if not db.check_connection():
        print("Error: Cannot connect to database")
        sys.exit(1)

    try:
        if args.check:
            report_tables(db)
            return

        if args.drop:
            if not args.yes:
                answer = input("Drop boards, sprints, issues, teams and run history? (yes/no): ")
                if answer.strip().lower() != 'yes':
                    print("Cancelled")
                    return
            logger.warning("Dropping all mirror tables")
            Base.metadata.drop_all(db.engine)

        db.create_all()
        logger.info("Mirror schema is up to date")

        print("\nMirror tables:")
        report_tables(db)

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
