"""
Civic Issue Tracker API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires
the service container, and registers middleware and blueprints.
"""

import os
import time
from datetime import datetime
from typing import Any, Dict, Optional

import psutil
from flask import jsonify, current_app
from flask_openapi3 import OpenAPI, Info, Tag

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware
from models.base import utc_now
from services.container import ServiceContainer, build_services, load_config
from services.jobs import build_maintenance_jobs
from routes.issues import issues_bp
from routes.leaderboard import leaderboard_bp
from routes.authorities import authorities_bp

info = Info(
    title="Civic Issue Tracker API",
    version="1.0.0",
    description="Citizen issue reporting, moderation workflow and contribution leaderboards"
)

tags = [
    Tag(name="Issues", description="Civic issue lifecycle"),
    Tag(name="Leaderboard", description="Contribution rankings and statistics"),
    Tag(name="Authorities", description="Responsible departments and their performance"),
    Tag(name="Health", description="System health and status")
]


def create_app(services: Optional[ServiceContainer] = None,
               config: Optional[Dict[str, Any]] = None) -> OpenAPI:
    """
    Build the application.

    Args:
        services: Pre-built service container; built from configuration otherwise
        config: Overrides applied on top of the environment configuration

    Returns:
        Configured Flask application
    """
    settings = dict(load_config(), **(config or {}))

    setup_observability(settings['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info, tags=tags)
    app.config.update(settings)
    app.config['DEBUG'] = settings['ENVIRONMENT'] == 'development'
    app.config['STARTED_AT'] = time.time()

    add_observability_middleware(app, instrument=settings['OTEL_ENABLED'])
    ErrorHandlerMiddleware(app)

    if services is None:
        services = build_services(settings)
        services.mongodb.create_indexes()
    app.services = services

    app.job_runner = build_maintenance_jobs(services, retention_days=services.retention_days)
    if settings['JOBS_ENABLED']:
        app.job_runner.start()

    app.register_blueprint(issues_bp)
    app.register_blueprint(leaderboard_bp)
    app.register_blueprint(authorities_bp)

    app.add_url_rule('/api/healthz', 'health_check', health_check)
    app.add_url_rule('/api/status', 'system_status', system_status)

    return app


def health_check():
    """Health check endpoint with dependency monitoring."""
    try:
        health_data = current_app.services.health.get_health()
    except Exception as e:
        current_app.logger.error(f"Health check failed: {e}", exc_info=True)
        return jsonify({
            "status": "unhealthy",
            "service": "civic-issue-tracker-api",
            "timestamp": utc_now().isoformat() + "Z",
            "error": f"Health check service failed: {str(e)}"
        }), 503

    status_code = 503 if health_data["status"] == "unhealthy" else 200
    return jsonify(health_data), status_code


def system_status():
    """Uptime, configuration summary and the last run of every scheduled job."""
    runner = current_app.job_runner
    jobs = {}
    for name in runner.job_names:
        last = runner.last_result(name)
        jobs[name] = last.to_dict() if last else None

    return jsonify({
        "service": "civic-issue-tracker-api",
        "environment": current_app.config['ENVIRONMENT'],
        "timestamp": utc_now().isoformat() + "Z",
        "uptime": _get_application_uptime(),
        "configuration": _get_configuration_summary(),
        "jobs": jobs
    }), 200


def _get_application_uptime() -> Dict[str, Any]:
    process = psutil.Process(os.getpid())
    return {
        "uptime_seconds": round(time.time() - current_app.config['STARTED_AT'], 2),
        "process_started_at": datetime.fromtimestamp(process.create_time()).isoformat(),
        "process_id": os.getpid()
    }


def _get_configuration_summary() -> Dict[str, Any]:
    config = current_app.config
    return {
        "mongodb_database": config.get('MONGODB_DATABASE'),
        "redis_configured": bool(config.get('REDIS_URL')),
        "notifier_enabled": bool(config.get('NOTIFIER_ENABLED')),
        "jobs_enabled": bool(config.get('JOBS_ENABLED')),
        "otel_enabled": bool(config.get('OTEL_ENABLED')),
        "bulk_max_workers": config.get('BULK_MAX_WORKERS')
    }


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
