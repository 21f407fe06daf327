"""
Health checks for deployment probes.

Provides:
- /health/live: Liveness probe (process is running)
- /health/ready: Readiness probe (queue and channel are wired)

Neither probe calls the gateway or any other external service.
"""

import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class HealthStatus:
    """Health status response."""

    status: str  # "healthy", "unhealthy"
    timestamp: str
    ready: bool
    uptime_seconds: float
    mode: str  # channel backend: "waha" | "stub"
    optional_services: Dict[str, bool]
    message: str
    metadata: Dict[str, Any]


class HealthChecker:
    """
    Invariant: health checks do NOT verify external services.
    A gateway outage shows up in /api/status, not here.
    """

    def __init__(self, start_time: float):
        self.start_time = start_time

    def get_mode(self) -> str:
        return os.getenv("CHANNEL_BACKEND", "waha")

    def check_optional_services(self) -> Dict[str, bool]:
        """Which optional integrations are configured."""
        return {
            "automation": bool(os.getenv("N8N_WEBHOOK_URL")),
            "sheets": bool(os.getenv("GOOGLE_SHEETS_API_KEY") and os.getenv("GOOGLE_SHEETS_ID")),
            "ai_chat": bool(os.getenv("OPENROUTER_API_KEY")),
            "admins": bool(os.getenv("ADMIN_NUMBERS")),
        }

    def _uptime(self) -> float:
        return time.time() - self.start_time

    def check_live(self) -> HealthStatus:
        """Always healthy if this code runs."""
        return HealthStatus(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            ready=True,
            uptime_seconds=self._uptime(),
            mode=self.get_mode(),
            optional_services=self.check_optional_services(),
            message="Gateway process is running",
            metadata={"environment": os.getenv("ENVIRONMENT", "development")},
        )

    def check_ready(self, infra: Optional[Any] = None) -> HealthStatus:
        """
        Ready when infrastructure is bootstrapped and the queue is accepting work.

        Args:
            infra: InfraBootstrap instance, or None if startup has not finished
        """
        if infra is None:
            ready, message = False, "Infrastructure not bootstrapped"
            metadata: Dict[str, Any] = {}
        else:
            queue = infra.get_queue()
            ready = queue is not None and infra.get_channel() is not None
            message = "Queue and channel initialized" if ready else "Queue or channel missing"
            metadata = {
                "session": infra.get_channel().session_name,
                "queue_size": queue.size,
                "queue_draining": queue.is_draining,
            }

        return HealthStatus(
            status="healthy" if ready else "unhealthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            ready=ready,
            uptime_seconds=self._uptime(),
            mode=self.get_mode(),
            optional_services=self.check_optional_services(),
            message=message,
            metadata=metadata,
        )

    def to_dict(self, status: HealthStatus) -> Dict[str, Any]:
        """Convert HealthStatus to dict for JSON serialization."""
        return asdict(status)


# Global health checker instance
_health_checker: HealthChecker = None  # type: ignore


def initialize_health_checker():
    """Initialize global health checker."""
    global _health_checker
    _health_checker = HealthChecker(start_time=time.time())


def get_health_checker() -> HealthChecker:
    """Get or initialize health checker."""
    global _health_checker
    if _health_checker is None:
        initialize_health_checker()
    return _health_checker  # type: ignore
