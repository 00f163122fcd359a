"""
Health checks for liveness and readiness probes.
"""
from datetime import datetime, timezone
from typing import Any, Dict

import psutil

from .logging import get_logger

logger = get_logger()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthChecker:
    """
    Liveness (is the process up?) and readiness (can it take traffic?).

    The service holds no connections, so readiness only looks at local
    resources.
    """

    def __init__(self, service_name: str = "routeflow", version: str = "0.1.0"):
        self.service_name = service_name
        self.version = version

    def liveness(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
        }

    def readiness(self) -> Dict[str, Any]:
        """
        Run the resource checks.

        A check in "error" makes the service not ready; "warning" is
        reported but does not.
        """
        checks = {
            "disk_space": self._check_disk_space(),
            "memory": self._check_memory(),
        }
        ready = all(check["status"] != "error" for check in checks.values())

        return {
            "status": "ready" if ready else "not_ready",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
            "checks": checks,
        }

    def _check_disk_space(self, threshold_gb: float = 1.0) -> Dict[str, Any]:
        try:
            disk = psutil.disk_usage("/")
        except OSError as e:
            logger.warning("health.disk_check_failed", error=str(e))
            return {"status": "error", "error": str(e)}

        available_gb = disk.free / (1024**3)
        return {
            "status": _grade(available_gb, threshold_gb),
            "available_gb": round(available_gb, 2),
            "total_gb": round(disk.total / (1024**3), 2),
            "used_percent": disk.percent,
        }

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        try:
            memory = psutil.virtual_memory()
        except (OSError, psutil.Error) as e:
            logger.warning("health.memory_check_failed", error=str(e))
            return {"status": "error", "error": str(e)}

        available_mb = memory.available / (1024**2)
        return {
            "status": _grade(available_mb, threshold_mb),
            "available_mb": round(available_mb, 2),
            "total_mb": round(memory.total / (1024**2), 2),
            "used_percent": memory.percent,
        }


def _grade(available: float, threshold: float) -> str:
    if available < threshold:
        return "error"
    if available < threshold * 2:
        return "warning"
    return "ok"
