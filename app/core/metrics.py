"""
Engine metrics for plan mutations, locks and snapshots
"""

import time
import logging
from typing import Dict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import asyncio

from app.core.exceptions import SeatplanException, VersionConflictError

logger = logging.getLogger(__name__)


@dataclass
class EngineMetrics:
    """Plan engine counters"""
    mutations_committed: int = 0
    mutations_rejected: int = 0
    version_conflicts: int = 0

    locks_acquired: int = 0
    lock_conflicts: int = 0
    locks_released: int = 0

    seats_assigned: int = 0
    table_full_rejections: int = 0

    snapshots_created: int = 0
    snapshots_restored: int = 0

    unexpected_failures: int = 0

    # Mutation times for percentile calculation
    mutation_times: list = field(default_factory=list)

    def add_mutation_time(self, duration: float):
        """Add mutation duration for metrics"""
        self.mutation_times.append(duration)
        if len(self.mutation_times) > 1000:  # Keep only last 1000 for memory
            self.mutation_times = self.mutation_times[-1000:]

    def get_percentiles(self) -> Dict[str, float]:
        """Calculate mutation time percentiles"""
        if not self.mutation_times:
            return {"p50": 0.0, "p95": 0.0, "p99": 0.0}

        sorted_times = sorted(self.mutation_times)
        length = len(sorted_times)

        return {
            "p50": sorted_times[int(length * 0.5)],
            "p95": sorted_times[int(length * 0.95)],
            "p99": sorted_times[int(length * 0.99)],
        }

    def to_dict(self) -> Dict:
        """Convert metrics to dictionary"""
        percentiles = self.get_percentiles()

        return {
            "mutations": {
                "committed": self.mutations_committed,
                "rejected": self.mutations_rejected,
                "version_conflicts": self.version_conflicts,
                "unexpected_failures": self.unexpected_failures,
            },
            "locks": {
                "acquired": self.locks_acquired,
                "conflicts": self.lock_conflicts,
                "released": self.locks_released,
            },
            "seats": {
                "assigned": self.seats_assigned,
                "table_full": self.table_full_rejections,
            },
            "snapshots": {
                "created": self.snapshots_created,
                "restored": self.snapshots_restored,
            },
            "performance": {
                "percentiles_ms": {
                    "p50": percentiles["p50"] * 1000,
                    "p95": percentiles["p95"] * 1000,
                    "p99": percentiles["p99"] * 1000,
                }
            },
        }


class MetricsCollector:
    """In-process metrics collector for the plan engine"""

    def __init__(self):
        self.metrics = EngineMetrics()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def track_mutation(self, operation_type: str):
        """Context manager to time a mutation and classify its outcome"""
        start_time = time.time()
        try:
            yield
        except VersionConflictError:
            async with self._lock:
                self.metrics.mutations_rejected += 1
                self.metrics.version_conflicts += 1
            raise
        except SeatplanException:
            async with self._lock:
                self.metrics.mutations_rejected += 1
            raise
        except Exception as e:
            async with self._lock:
                self.metrics.unexpected_failures += 1
            logger.error(f"Failed {operation_type} operation: {type(e).__name__}: {e}")
            raise
        else:
            duration = time.time() - start_time
            async with self._lock:
                self.metrics.mutations_committed += 1
                self.metrics.add_mutation_time(duration)

            if duration > 5.0:  # Log slow operations
                logger.warning(f"Slow {operation_type} operation: {duration:.2f}s")

    async def increment(self, counter: str, amount: int = 1):
        """Increment a named counter"""
        async with self._lock:
            setattr(self.metrics, counter, getattr(self.metrics, counter) + amount)

    async def get_metrics(self) -> Dict:
        """Get current metrics"""
        async with self._lock:
            return self.metrics.to_dict()

    async def reset_metrics(self):
        """Reset all metrics (useful for testing)"""
        async with self._lock:
            self.metrics = EngineMetrics()
            logger.info("Metrics reset")


# Global metrics collector instance
metrics_collector = MetricsCollector()
