"""
SQLAlchemy ORM Models
Defines the mirrored Jira entities plus the raw audit and run tracking tables.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, ForeignKey,
    Index, Integer, Numeric, String, Text
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# ============================================
# MIRRORED ENTITIES
# ============================================

class Board(Base):
    """Jira board model. Boards are deactivated, never deleted."""
    __tablename__ = 'boards'

    id = Column(Integer, primary_key=True)
    external_id = Column(BigInteger, nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    project_key = Column(String(50), nullable=False, default='UNKNOWN')
    board_type = Column(String(20), nullable=False, default='simple')  # 'scrum', 'kanban', 'simple'
    has_sprints = Column(Boolean, nullable=False, default=False)
    sprint_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Board configuration
    board_location = Column(String(255))
    filter_id = Column(BigInteger)
    can_edit = Column(Boolean)
    sub_query = Column(Text)
    column_config = Column(Text)
    estimation_config = Column(Text)
    ranking_config = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_boards_is_active', 'is_active'),
    )


class Sprint(Base):
    """Jira sprint model."""
    __tablename__ = 'sprints'

    id = Column(Integer, primary_key=True)
    external_id = Column(BigInteger, nullable=False, unique=True)
    board_id = Column(BigInteger, ForeignKey('boards.external_id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    state = Column(String(20))  # 'future', 'active', 'closed'
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    complete_date = Column(DateTime)
    goal = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_sprints_board', 'board_id'),
    )


class Issue(Base):
    """Jira issue model."""
    __tablename__ = 'issues'

    id = Column(Integer, primary_key=True)
    external_id = Column(String(50), nullable=False, unique=True)
    issue_key = Column(String(50), nullable=False)
    board_id = Column(BigInteger, ForeignKey('boards.external_id', ondelete='SET NULL'))
    sprint_id = Column(BigInteger, ForeignKey('sprints.external_id', ondelete='SET NULL'))

    issue_type = Column(String(100))
    status = Column(String(100))
    priority = Column(String(100))

    assignee_account_id = Column(String(255))
    assignee_display_name = Column(String(255))
    reporter_account_id = Column(String(255))
    reporter_display_name = Column(String(255))

    summary = Column(Text)
    description = Column(Text)

    story_points = Column(Numeric(10, 2))

    # Time tracking (seconds)
    original_estimate = Column(Integer)
    remaining_estimate = Column(Integer)
    time_spent = Column(Integer)

    created_date = Column(DateTime)
    updated_date = Column(DateTime)
    resolved_date = Column(DateTime)
    due_date = Column(DateTime)

    # JSON list text
    labels = Column(Text)
    components = Column(Text)
    fix_versions = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_issues_board', 'board_id'),
        Index('idx_issues_sprint', 'sprint_id'),
        Index('idx_issues_key', 'issue_key'),
    )


class Team(Base):
    """Jira team model."""
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    team_id = Column(String(100), nullable=False, unique=True)
    team_name = Column(String(255), nullable=False)
    description = Column(Text)
    lead_account_id = Column(String(255))
    lead_display_name = Column(String(255))
    member_count = Column(Integer, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ============================================
# AUDIT & TRACKING MODELS
# ============================================

class JiraData(Base):
    """Verbatim remote payload, one row per fetch."""
    __tablename__ = 'jira_data'

    id = Column(Integer, primary_key=True)
    board_id = Column(BigInteger)
    team_id = Column(String(100))
    data_type = Column(String(50), nullable=False)  # 'boards', 'sprints', 'issues', 'board_config', 'teams'
    raw_data = Column(Text, nullable=False)
    retrieval_timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
    record_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_jira_data_lookup', 'board_id', 'data_type', 'retrieval_timestamp'),
    )


class SyncRun(Base):
    """Synchronization run tracking model."""
    __tablename__ = 'sync_runs'

    id = Column(Integer, primary_key=True)
    run_type = Column(String(50), nullable=False)  # 'full', 'board', 'boards', 'teams'
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime)
    status = Column(String(50), nullable=False, default='running')  # 'running', 'completed', 'failed'
    board_count = Column(Integer, default=0)
    sprint_count = Column(Integer, default=0)
    issue_count = Column(Integer, default=0)
    message = Column(Text)
