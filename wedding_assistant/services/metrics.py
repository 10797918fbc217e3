"""CloudWatch custom metrics for the external services behind a reply.

Every reply touches up to three services, Azure AI Search (``search``),
Azure OpenAI (``openai``) and ACS Advanced Messages (``messages``).  Each
call is recorded as a request count, a latency sample and, on failure, an
error count keyed by exception type.

* Data points are buffered in memory behind a ``threading.Lock``.
* With ``METRICS_ENABLED=true`` a daemon thread pushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS``; otherwise the data is only
  logged at DEBUG level and discarded on flush.

Usage
-----
>>> from wedding_assistant.services.metrics import metrics
>>> async with metrics.track("search", "docs/search"):
...     await client.post(...)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "WeddingAssistant"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _datum(name: str, dimensions: dict[str, str], value: float, unit: str) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ─────────────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        self._extend(
            _datum("ExternalAPI/RequestCount", {"Service": service, "Status": "success"}, 1, "Count"),
            _datum(
                "ExternalAPI/Latency",
                {"Service": service, "Operation": operation},
                latency_ms,
                "Milliseconds",
            ),
        )
        logger.debug("Metric: %s %s ok in %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        data = [
            _datum("ExternalAPI/RequestCount", {"Service": service, "Status": "failure"}, 1, "Count"),
            _datum("ExternalAPI/ErrorCount", {"Service": service, "ErrorType": error_type}, 1, "Count"),
        ]
        if latency_ms > 0:
            data.append(
                _datum(
                    "ExternalAPI/Latency",
                    {"Service": service, "Operation": operation},
                    latency_ms,
                    "Milliseconds",
                )
            )
        self._extend(*data)
        logger.debug(
            "Metric: %s %s failed (%s) after %.1fms",
            service, operation, error_type, latency_ms,
        )

    @asynccontextmanager
    async def track(self, service: str, operation: str):
        """Time the wrapped block and record its outcome.

        Exceptions are recorded under their class name and re-raised.
        """
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.record_failure(
                service, operation,
                error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise
        self.record_success(service, operation, latency_ms=(time.perf_counter() - t0) * 1000)

    # ── Publishing ────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Metrics disabled, dropping %d data points", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _extend(self, *data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.extend(data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
