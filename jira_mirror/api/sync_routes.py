"""
Sync API Blueprint
Provides REST endpoints for triggering and monitoring synchronization runs.
"""

from flask import Blueprint, current_app, jsonify, request

from jira_mirror.database.queries import MirrorQueries
from jira_mirror.utils.logger import get_logger

logger = get_logger(__name__)

sync_bp = Blueprint('sync', __name__, url_prefix='/api/sync')


def _orchestrator():
    return current_app.config['SYNC_ORCHESTRATOR']


def _db():
    return current_app.config['SYNC_DB']


def _run_to_dict(run) -> dict:
    return {
        'id': run.id,
        'run_type': run.run_type,
        'status': run.status,
        'started_at': run.started_at.isoformat() if run.started_at else None,
        'completed_at': run.completed_at.isoformat() if run.completed_at else None,
        'board_count': run.board_count,
        'sprint_count': run.sprint_count,
        'issue_count': run.issue_count,
        'message': run.message
    }


@sync_bp.route('/full', methods=['POST'])
def trigger_full_sync():
    """
    Trigger a full synchronization.

    Returns:
        JSON with the run summary
    """
    try:
        logger.info("Full sync triggered via API")
        summary = _orchestrator().run_full_sync()

        return jsonify({
            'success': summary.success,
            'summary': summary.to_dict()
        })

    except Exception as e:
        logger.error(f"Full sync trigger failed: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/boards', methods=['POST'])
def trigger_board_sync():
    """Trigger a board-only synchronization."""
    try:
        logger.info("Board sync triggered via API")
        count = _orchestrator().run_board_only_sync()

        return jsonify({
            'success': True,
            'board_count': count
        })

    except Exception as e:
        logger.error(f"Board sync trigger failed: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/boards/<int:board_id>', methods=['POST'])
def trigger_single_board_sync(board_id: int):
    """
    Trigger synchronization of one board's sprints and issues.

    Args:
        board_id: Jira board id
    """
    try:
        logger.info(f"Sync for board {board_id} triggered via API")
        summary = _orchestrator().run_sync_for_board(board_id)

        status_code = 404 if summary.message == 'Board not found' else 200
        return jsonify({
            'success': summary.success,
            'summary': summary.to_dict()
        }), status_code

    except Exception as e:
        logger.error(f"Sync for board {board_id} failed: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/teams', methods=['POST'])
def trigger_team_sync():
    """Trigger a team synchronization."""
    try:
        count = _orchestrator().run_team_sync()

        return jsonify({
            'success': True,
            'team_count': count
        })

    except Exception as e:
        logger.error(f"Team sync trigger failed: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/status', methods=['GET'])
def get_sync_status():
    """
    Get board counts and the most recent run.

    Returns:
        JSON with active/inactive board counts and the latest run
    """
    try:
        with _db().session_scope() as session:
            queries = MirrorQueries(session)
            counts = queries.get_board_counts()
            latest = queries.get_latest_run()

            return jsonify({
                'success': True,
                'boards': counts,
                'latest_run': _run_to_dict(latest) if latest else None
            })

    except Exception as e:
        logger.error(f"Failed to get sync status: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/runs', methods=['GET'])
def list_sync_runs():
    """
    List recent synchronization runs.

    Query params:
        limit: Number of runs to return (default 10)
    """
    try:
        limit = int(request.args.get('limit', 10))

        with _db().session_scope() as session:
            runs = MirrorQueries(session).get_recent_runs(limit=limit)
            result = [_run_to_dict(run) for run in runs]

        return jsonify({
            'success': True,
            'runs': result
        })

    except Exception as e:
        logger.error(f"Failed to list sync runs: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@sync_bp.route('/test-connection', methods=['GET'])
def test_connection():
    """Check that the Jira credentials work."""
    connected = _orchestrator().client.test_connection()
    return jsonify({
        'success': connected,
        'jira': 'connected' if connected else 'unreachable'
    })
