"""
Flask Application Factory
Main entry point for the Jira Mirror sync service: HTTP triggers plus the background scheduler.
"""

import os
from datetime import datetime, timedelta

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask, jsonify
from flask_cors import CORS

from jira_mirror import __version__
from jira_mirror.config_manager import ConfigManager
from jira_mirror.database.connection import DatabaseConnection, get_db
from jira_mirror.sync.orchestrator import SyncOrchestrator
from jira_mirror.utils.logger import get_logger, setup_logging


def create_app(
    orchestrator: SyncOrchestrator = None,
    db: DatabaseConnection = None,
    configure_logging: bool = True
) -> Flask:
    """
    Application factory for Flask app.

    Args:
        orchestrator: Sync orchestrator to trigger. Built from configuration when omitted.
        db: Database connection. The shared connection when omitted.
        configure_logging: Whether to install the application log handlers

    Returns:
        Configured Flask application
    """
    if configure_logging:
        setup_logging()
    logger = get_logger(__name__)

    app = Flask(__name__)

    db = db or get_db()
    orchestrator = orchestrator or SyncOrchestrator(db=db)

    app.config['SECRET_KEY'] = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['JSON_SORT_KEYS'] = False
    app.config['SYNC_ORCHESTRATOR'] = orchestrator
    app.config['SYNC_DB'] = db

    CORS(app)

    from jira_mirror.api.sync_routes import sync_bp
    app.register_blueprint(sync_bp)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        db_healthy = db.check_connection()

        return jsonify({
            'status': 'healthy' if db_healthy else 'degraded',
            'timestamp': datetime.utcnow().isoformat(),
            'database': 'connected' if db_healthy else 'disconnected'
        })

    @app.route('/', methods=['GET'])
    def root():
        """Root endpoint with API info."""
        return jsonify({
            'name': 'Jira Mirror Sync API',
            'version': __version__,
            'endpoints': {
                '/health': 'Health check',
                '/api/sync/full': 'Full synchronization (POST)',
                '/api/sync/boards': 'Board-only synchronization (POST)',
                '/api/sync/boards/<board_id>': 'Single board synchronization (POST)',
                '/api/sync/teams': 'Team synchronization (POST)',
                '/api/sync/status': 'Board counts and latest run (GET)',
                '/api/sync/runs': 'Recent runs (GET)',
                '/api/sync/test-connection': 'Jira connection test (GET)'
            }
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    logger.info("Flask application created")

    return app


def create_scheduler(orchestrator: SyncOrchestrator, scheduler_config: dict = None) -> BackgroundScheduler:
    """
    Create and configure the background scheduler.

    Jobs: a bootstrap full sync shortly after start, a periodic full sync, a
    more frequent board-only sync and a daily team sync. A job never overlaps
    itself, but different jobs and manual triggers may run concurrently.

    Args:
        orchestrator: Orchestrator whose triggers the jobs call
        scheduler_config: Scheduler settings. Read from configuration when omitted.

    Returns:
        Configured scheduler (not started)
    """
    logger = get_logger(__name__)
    if scheduler_config is None:
        scheduler_config = ConfigManager().get_scheduler_config()

    scheduler = BackgroundScheduler(
        executors={'default': ThreadPoolExecutor(scheduler_config.get('pool_size', 3))},
        job_defaults={'coalesce': True, 'max_instances': 1}
    )

    if not scheduler_config.get('enabled', True):
        logger.info("Scheduler is disabled")
        return scheduler

    now = datetime.now()

    def full_sync_job():
        """Scheduled full synchronization."""
        logger.info("Running scheduled full synchronization")
        try:
            summary = orchestrator.run_full_sync()
            logger.info(f"Scheduled full synchronization finished: {summary.message}")
        except Exception as e:
            logger.error(f"Scheduled full synchronization failed: {e}")

    def board_sync_job():
        """Scheduled board-only synchronization."""
        logger.info("Running scheduled board synchronization")
        try:
            orchestrator.run_board_only_sync()
        except Exception as e:
            logger.error(f"Scheduled board synchronization failed: {e}")

    def team_sync_job():
        """Scheduled team synchronization."""
        logger.info("Running scheduled team synchronization")
        try:
            orchestrator.run_team_sync()
        except Exception as e:
            logger.error(f"Scheduled team synchronization failed: {e}")

    bootstrap_delay = scheduler_config.get('bootstrap_delay_seconds', 60)
    scheduler.add_job(
        full_sync_job,
        DateTrigger(run_date=now + timedelta(seconds=bootstrap_delay)),
        id='bootstrap_full_sync'
    )
    scheduler.add_job(
        full_sync_job,
        IntervalTrigger(hours=scheduler_config.get('full_sync_interval_hours', 4)),
        id='full_sync'
    )
    scheduler.add_job(
        board_sync_job,
        IntervalTrigger(
            hours=scheduler_config.get('board_sync_interval_hours', 2),
            start_date=now + timedelta(seconds=scheduler_config.get('board_bootstrap_delay_seconds', 30))
        ),
        id='board_sync'
    )
    scheduler.add_job(
        team_sync_job,
        IntervalTrigger(hours=scheduler_config.get('team_sync_interval_hours', 24)),
        id='team_sync'
    )

    return scheduler


if __name__ == '__main__':
    # Development server
    app = create_app()
    scheduler = create_scheduler(app.config['SYNC_ORCHESTRATOR'])
    scheduler.start()

    try:
        app.run(
            host='0.0.0.0',
            port=int(os.getenv('FLASK_PORT', 6922)),
            debug=os.getenv('FLASK_DEBUG', 'false').lower() == 'true'
        )
    except (KeyboardInterrupt, SystemExit):
        scheduler.shutdown()
