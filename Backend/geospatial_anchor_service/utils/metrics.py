"""
Metrics collection for Geospatial Anchor Service
Simple metrics without external dependencies
"""

import time
import logging
import threading
from typing import Dict, Any
from datetime import datetime

logger = logging.getLogger(__name__)


class SimpleMetrics:
    """Simple metrics collector for the geospatial session"""

    def __init__(self):
        self.counters: Dict[str, int] = {}
        self.gauges: Dict[str, float] = {}
        self.start_time = time.time()
        self._lock = threading.Lock()

    def increment_counter(self, name: str, value: int = 1):
        """Increment a counter metric"""
        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value"""
        with self._lock:
            self.gauges[name] = value

    def get_counter(self, name: str) -> int:
        return self.counters.get(name, 0)

    def get_metrics(self) -> Dict[str, Any]:
        """Get all metrics"""
        with self._lock:
            return {
                'counters': dict(self.counters),
                'gauges': dict(self.gauges),
                'uptime_seconds': time.time() - self.start_time,
                'timestamp': datetime.now().isoformat()
            }

    def reset(self):
        with self._lock:
            self.counters.clear()
            self.gauges.clear()


# Global metrics instance
metrics = SimpleMetrics()


def setup_metrics():
    """Setup metrics collection"""
    logger.info("📊 Geospatial Anchor Service metrics initialized")
    return metrics
