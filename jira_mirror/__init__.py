"""
Jira Mirror
Mirrors Jira boards, sprints and issues into a local relational store.
"""

__version__ = '1.0.0'
