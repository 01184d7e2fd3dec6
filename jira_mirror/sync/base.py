"""
Synchronizer Base Module
Shared plumbing for the board, sprint, issue and team synchronizers.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jira_mirror.config_manager import ConfigManager
from jira_mirror.database.connection import DatabaseConnection, get_db
from jira_mirror.database.models import JiraData
from jira_mirror.jira_client import JiraClient
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)

# Per-record mapping failures that skip a single record
MAPPING_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


def assign_changed(instance: Any, values: Dict[str, Any]) -> bool:
    """
    Copy values onto a model instance, touching only attributes that differ.

    Returns:
        True if any attribute changed
    """
    changed = False
    for attr, value in values.items():
        if getattr(instance, attr) != value:
            setattr(instance, attr, value)
            changed = True
    return changed


class BaseSynchronizer:
    """Holds the remote client, database handle and sync settings."""

    def __init__(
        self,
        client: JiraClient = None,
        db: DatabaseConnection = None,
        sync_config: Dict = None
    ):
        if sync_config is None:
            sync_config = ConfigManager().get_sync_config()

        self.client = client or JiraClient()
        self.db = db or get_db()
        self.sync_config = sync_config

        self.page_size = sync_config.get('page_size', 50)
        self.max_pages = sync_config.get('max_pages', 200)
        self.max_items = sync_config.get('max_items', 10000)
        self.timezone = sync_config.get('timezone', 'UTC')
        self.store_raw_payloads = sync_config.get('store_raw_payloads', True)

    # ========================================
    # Raw Audit
    # ========================================

    def _store_raw(
        self,
        data_type: str,
        payload: Any,
        record_count: int,
        board_id: int = None,
        team_id: str = None
    ) -> None:
        """Write the verbatim payload of one fetch to the raw audit table."""
        if not self.store_raw_payloads:
            return

        try:
            with self.db.session_scope() as session:
                session.add(JiraData(
                    board_id=board_id,
                    team_id=team_id,
                    data_type=data_type,
                    raw_data=json.dumps(payload, default=str),
                    retrieval_timestamp=datetime.utcnow(),
                    record_count=record_count
                ))
        except SQLAlchemyError as e:
            logger.error(f"Failed to store raw {data_type} payload (board {board_id}): {e}")

    # ========================================
    # Batched Upserts
    # ========================================

    def _upsert_row(self, session: Session, model, key: str, row: Dict) -> None:
        """Merge a mapped row into the existing record, or insert it."""
        existing = session.query(model).filter(getattr(model, key) == row[key]).first()
        if existing is not None:
            assign_changed(existing, row)
        else:
            session.add(model(**row))

    def _upsert_batch(self, model, rows: List[Dict], key: str = 'external_id', label: str = 'records') -> int:
        """
        Upsert a batch of rows in one transaction.

        If the batch transaction fails, each row is retried in its own
        transaction so only the offending rows are skipped.

        Returns:
            Number of rows persisted
        """
        if not rows:
            return 0

        try:
            with self.db.session_scope() as session:
                for row in rows:
                    self._upsert_row(session, model, key, row)
            return len(rows)
        except SQLAlchemyError as e:
            logger.warning(f"Batch of {len(rows)} {label} failed, retrying one by one: {e}")

        persisted = 0
        for row in rows:
            try:
                with self.db.session_scope() as session:
                    self._upsert_row(session, model, key, row)
                persisted += 1
            except SQLAlchemyError as e:
                logger.error(f"Skipping {label} {row.get(key)}: {e}")
        return persisted


def first_present(data: Dict, names: List[str]) -> Optional[Any]:
    """Return the first non-null value among the named keys."""
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None
