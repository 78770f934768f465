# SPDX-License-Identifier: Apache-2.0

"""
Health Check Service

Reports the status of MongoDB, Redis and the notifier broker, recent
notification dispatch failures and basic system metrics.
"""

import os
import time
import psutil
from typing import Dict, Any, Optional
from opentelemetry import trace

from models.base import utc_now
from services.mongodb import MongoDBService
from services.notifier import NotificationDispatcher
from services.redis import RedisService

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, redis_service: Optional[RedisService],
                 dispatcher: NotificationDispatcher):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.dispatcher = dispatcher
        self.service_version = "1.0.0"

    def get_health(self, include_system_metrics: bool = True) -> Dict[str, Any]:
        """Get health status including all dependencies."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            redis_health = self._check_redis_health()
            notifier_health = self._check_notifier_health()

            # MongoDB is the only hard dependency
            overall_status = self._determine_overall_status(
                mongodb_health["status"],
                [redis_health["status"], notifier_health["status"]]
            )

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            health_data = {
                "status": overall_status,
                "service": "civic-issue-tracker-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": utc_now().isoformat() + "Z",
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health,
                    "notifier": notifier_health
                }
            }
            if include_system_metrics:
                health_data["system_metrics"] = self._get_system_metrics()

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"],
                "health.notifier_status": notifier_health["status"]
            })

            return health_data

    def _check_mongodb_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.mongodb_check") as span:
            health = self.mongodb_service.health_check()
            span.set_attribute("mongodb.status", health["status"])
            return health

    def _check_redis_health(self) -> Dict[str, Any]:
        if self.redis_service is None:
            return {"status": "disabled"}
        return self.redis_service.health_check()

    def _check_notifier_health(self) -> Dict[str, Any]:
        """Broker reachability plus recently recorded dispatch failures."""
        if not self.dispatcher.enabled:
            return {"status": "disabled"}

        failures = self.dispatcher.recent_failures
        health = {
            "status": "healthy",
            "recent_failures": len(failures),
            "pending": self.dispatcher.pending,
            "last_failure": str(failures[-1]) if failures else None
        }

        check = getattr(self.dispatcher.notifier, "health_check", None)
        if check is not None and not check():
            health["status"] = "unhealthy"
        return health

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic system performance metrics."""
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "cpu_percent": psutil.cpu_percent(interval=0.1),
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "disk": {
                    "used_gb": round(disk.used / 1024 / 1024 / 1024, 2),
                    "total_gb": round(disk.total / 1024 / 1024 / 1024, 2),
                    "percent": round((disk.used / disk.total) * 100, 2)
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except Exception as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }

    def _determine_overall_status(self, primary_status: str, optional_statuses: list) -> str:
        if primary_status != "healthy":
            return "unhealthy"
        if any(status == "unhealthy" for status in optional_statuses):
            return "degraded"
        return "healthy"
