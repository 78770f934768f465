# SPDX-License-Identifier: Apache-2.0

"""
Service wiring.

Every collaborator is constructed here and passed explicitly; services never
look each other up through the application object.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from models.base import utc_now
from services.analytics import AnalyticsService
from services.assignment import AssignmentResolver
from services.authority_registry import AuthorityRegistry
from services.contribution_ledger import ContributionLedger
from services.health import HealthCheckService
from services.issue_registry import IssueRegistry
from services.leaderboard import LeaderboardService
from services.mongodb import MongoDBService
from services.notifier import NotificationDispatcher, Notifier, create_amqp_notifier
from services.redis import RedisService
from services.state_machine import IssueStateMachine

logger = logging.getLogger(__name__)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def load_config() -> Dict[str, Any]:
    """Read service configuration from the environment."""
    return {
        "ENVIRONMENT": os.getenv("ENVIRONMENT", "development"),
        "MONGODB_URI": os.getenv("MONGODB_URI", "mongodb://localhost:27017/civic_issues_dev"),
        "MONGODB_DATABASE": os.getenv("MONGODB_DATABASE", "civic_issues_dev"),
        "REDIS_URL": os.getenv("REDIS_URL"),
        "AMQP_URL": os.getenv("AMQP_URL"),
        "NOTIFIER_ENABLED": _flag(os.getenv("NOTIFIER_ENABLED", "false")),
        "BULK_MAX_WORKERS": int(os.getenv("BULK_MAX_WORKERS", "4")),
        "NOTIFY_WAIT_SECONDS": float(os.getenv("NOTIFY_WAIT_SECONDS", "0.2")),
        "SCORE_SNAPSHOT_TTL": int(os.getenv("SCORE_SNAPSHOT_TTL", "900")),
        "ISSUE_RETENTION_DAYS": int(os.getenv("ISSUE_RETENTION_DAYS", "90")),
        "JOBS_ENABLED": _flag(os.getenv("JOBS_ENABLED", "false")),
        "OTEL_ENABLED": _flag(os.getenv("OTEL_ENABLED", "false")),
    }


@dataclass
class ServiceContainer:
    """All services of one application instance."""
    mongodb: MongoDBService
    redis: Optional[RedisService]
    issues: IssueRegistry
    ledger: ContributionLedger
    authorities: AuthorityRegistry
    resolver: AssignmentResolver
    dispatcher: NotificationDispatcher
    state_machine: IssueStateMachine
    leaderboard: LeaderboardService
    analytics: AnalyticsService
    health: HealthCheckService
    clock: Callable[[], datetime]
    retention_days: int = 90

    def shutdown(self) -> None:
        self.dispatcher.shutdown()
        self.mongodb.close_connection()


def build_services(
    config: Optional[Dict[str, Any]] = None,
    mongo_client: Any = None,
    redis_service: Optional[RedisService] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utc_now
) -> ServiceContainer:
    """
    Build the service graph.

    Args:
        config: Settings as returned by ``load_config``; read from the
            environment when omitted
        mongo_client: Pre-built MongoDB client, e.g. an in-process one
        redis_service: Pre-built Redis service; built from REDIS_URL otherwise
        notifier: Notifier implementation; the AMQP notifier is built when
            NOTIFIER_ENABLED is set and none is given
        clock: Source of the current UTC time

    Returns:
        ServiceContainer
    """
    config = dict(load_config(), **(config or {}))

    mongodb = MongoDBService(config["MONGODB_URI"], config["MONGODB_DATABASE"], client=mongo_client)

    if redis_service is None and config.get("REDIS_URL"):
        redis_service = RedisService(config["REDIS_URL"])

    if notifier is None and _flag(config.get("NOTIFIER_ENABLED")):
        notifier = create_amqp_notifier()

    dispatcher = NotificationDispatcher(notifier, wait_seconds=float(config["NOTIFY_WAIT_SECONDS"]))

    issues = IssueRegistry(mongodb)
    ledger = ContributionLedger(mongodb, clock=clock)
    authorities = AuthorityRegistry(mongodb, issues, clock=clock)
    resolver = AssignmentResolver(authorities, issues)
    state_machine = IssueStateMachine(
        issues,
        ledger,
        authorities,
        resolver,
        dispatcher,
        clock=clock,
        bulk_max_workers=int(config["BULK_MAX_WORKERS"])
    )

    logger.info(
        "Services built",
        extra={"extra_fields": {
            "database": mongodb.database_name,
            "redis_enabled": redis_service is not None,
            "notifier_enabled": notifier is not None
        }}
    )

    return ServiceContainer(
        mongodb=mongodb,
        redis=redis_service,
        issues=issues,
        ledger=ledger,
        authorities=authorities,
        resolver=resolver,
        dispatcher=dispatcher,
        state_machine=state_machine,
        leaderboard=LeaderboardService(
            ledger,
            redis_service,
            clock=clock,
            snapshot_ttl=int(config["SCORE_SNAPSHOT_TTL"])
        ),
        analytics=AnalyticsService(issues, clock=clock),
        health=HealthCheckService(mongodb, redis_service, dispatcher),
        clock=clock,
        retention_days=int(config["ISSUE_RETENTION_DAYS"])
    )
