"""Health checks for the visualizer service."""

import asyncio
import inspect
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class HealthCheck:
    """A named probe; sync probes run in a worker thread so the timeout applies to them too."""
    name: str
    func: Callable[[], Any]
    timeout: float = 5.0

    async def probe(self) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await asyncio.wait_for(self.func(), timeout=self.timeout)
        return await asyncio.wait_for(asyncio.to_thread(self.func), timeout=self.timeout)


class HealthChecker:
    """Registry of named health checks run on demand."""

    def __init__(self):
        self.checks: Dict[str, HealthCheck] = {}
        self.last_results: Dict[str, Dict[str, Any]] = {}

    def register_check(self, name: str, check_func: Callable, timeout: float = 5.0):
        """Register (or replace) a health check."""
        self.checks[name] = HealthCheck(name, check_func, timeout)
        logger.debug(f"Registered health check: {name}")

    def clear(self):
        self.checks.clear()
        self.last_results.clear()

    async def run_check(self, name: str) -> Dict[str, Any]:
        """
        Run one check and record its outcome.

        A check passes by returning; a returned dict is merged into the
        result and a returned string becomes its message. Raising or
        exceeding the timeout marks it unhealthy or timed out.
        """
        check = self.checks.get(name)
        if check is None:
            return {"status": "error", "message": f"Health check '{name}' not found"}

        started = time.perf_counter()
        try:
            outcome = await check.probe()
        except asyncio.TimeoutError:
            result = {"status": "timeout", "message": f"Health check timed out after {check.timeout}s"}
        except Exception as e:
            logger.warning(f"Health check '{name}' failed: {e}")
            result = {"status": "unhealthy", "message": str(e), "error_type": type(e).__name__}
        else:
            result = {"status": "healthy", "message": outcome if isinstance(outcome, str) else "Check passed"}
            if isinstance(outcome, dict):
                result.update(outcome)

        result["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        result["timestamp"] = datetime.now(timezone.utc).isoformat()
        self.last_results[name] = result
        return result

    async def run_all_checks(self) -> Dict[str, Any]:
        """Run every registered check concurrently."""
        names = list(self.checks)
        outcomes = await asyncio.gather(*(self.run_check(name) for name in names))
        results = dict(zip(names, outcomes))
        healthy = all(result["status"] == "healthy" for result in outcomes)

        return {
            "overall_status": "healthy" if healthy else "unhealthy",
            "checks": results,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }


health_checker = HealthChecker()
