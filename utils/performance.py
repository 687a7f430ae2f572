"""Process and pool gauges for the health endpoint and Prometheus."""

from __future__ import annotations

import time
from contextlib import contextmanager

import psutil
from prometheus_client import Gauge, Histogram


db_connections = Gauge("db_connection_pool_size", "DB connection pool size")
pending_broadcasts = Gauge("health_pending_broadcasts", "Scheduled broadcasts seen by the last health check")
health_check_duration = Histogram("health_check_duration_seconds", "Health check duration")
process_memory_rss = Gauge("process_memory_rss_bytes", "Resident memory of the server process")


class PerformanceMonitor:
    def __init__(self) -> None:
        self._process = psutil.Process()

    @contextmanager
    def track_check(self):
        start = time.perf_counter()
        try:
            yield
        finally:
            health_check_duration.observe(time.perf_counter() - start)

    def record_db_pool(self, pool_size: int) -> None:
        db_connections.set(pool_size)

    def record_pending_broadcasts(self, count: int) -> None:
        pending_broadcasts.set(count)

    def gather_host_metrics(self) -> dict:
        memory_info = self._process.memory_info()
        process_memory_rss.set(memory_info.rss)
        return {
            "memory_rss": memory_info.rss,
            "cpu_percent": self._process.cpu_percent(interval=None),
            "threads": self._process.num_threads(),
        }
