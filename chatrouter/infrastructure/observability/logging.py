import structlog
import logging
import sys
import time
import uuid
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import os


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "chatrouter"
) -> None:
    """Setup structured logging configuration"""

    # Configure Python logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

    # Processors for structlog
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]

    # Add appropriate renderer based on format
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # Configure structlog
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Set service name in context
    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to all log entries"""

    # Add timestamp if not present
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()

    # Add correlation ID if available (from context)
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    if correlation_id and "correlation_id" not in event_dict:
        event_dict["correlation_id"] = correlation_id

    return event_dict


def new_correlation_id() -> str:
    return str(uuid.uuid4())


class RequestLogger:
    """Logger handle for one routed message

    Bound to a correlation id and the conversation, it is threaded through the
    conversation context so modules can log against the same request.
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None, **bindings: Any):
        self.correlation_id = correlation_id or new_correlation_id()
        self.logger = structlog.get_logger(name).bind(correlation_id=self.correlation_id, **bindings)
        self._timers: Dict[str, float] = {}

    def bind(self, **bindings: Any) -> "RequestLogger":
        child = RequestLogger.__new__(RequestLogger)
        child.correlation_id = self.correlation_id
        child.logger = self.logger.bind(**bindings)
        child._timers = self._timers
        return child

    def start_timer(self, label: str) -> None:
        self._timers[label] = time.perf_counter()

    def end_timer(self, label: str) -> float:
        """Stop a timer and return the elapsed milliseconds (0.0 if never started)"""
        started = self._timers.pop(label, None)
        if started is None:
            return 0.0
        return round((time.perf_counter() - started) * 1000, 3)

    def debug(self, event: str, **kwargs: Any) -> None:
        self.logger.debug(event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self.logger.info(event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self.logger.warning(event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self.logger.error(event, **kwargs)

    def log_message_received(self, text: str, history_size: int, **kwargs: Any) -> None:
        self.logger.info(
            "message_received",
            command=command_label(text),
            message_length=len(text),
            history_size=history_size,
            **kwargs
        )

    def log_routed(self, module_name: str, priority: int, routing_ms: float) -> None:
        self.logger.info(
            "message_routed",
            module=module_name,
            priority=priority,
            routing_ms=routing_ms
        )

    def log_command(
        self,
        text: str,
        module_name: str,
        result: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log the outcome of a routed message"""

        self.logger.info(
            "command_executed",
            command=command_label(text),
            module=module_name,
            result=result,
            details=details or {}
        )

    def log_module_error(self, module_name: str, phase: str, error: BaseException) -> None:
        """Log a module fault; only the exception type and message are recorded"""

        log = self.logger.warning if phase == "can_handle" else self.logger.error
        log(
            "module_error",
            module=module_name,
            phase=phase,
            error_type=type(error).__name__,
            error=str(error)
        )

    def log_fallback(self, text: str, total_ms: float) -> None:
        self.logger.warning(
            "no_module_handled_message",
            command=command_label(text),
            fallback_used=True,
            total_ms=total_ms
        )


def command_label(text: str) -> str:
    """First word of a slash command, or a generic label for free text"""
    if text.startswith("/"):
        parts = text.split()
        return parts[0] if parts else "/unknown"
    return "text_message"


class MetricsCollector:
    """Collect routing metrics"""

    def __init__(self):
        self.metrics: Dict[str, Any] = {}
        self.logger = structlog.get_logger("chatrouter.metrics")

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        """Record operation latency"""

        key = f"latency.{operation}"
        if key not in self.metrics:
            self.metrics[key] = {
                "count": 0,
                "sum": 0,
                "min": float('inf'),
                "max": 0
            }

        self.metrics[key]["count"] += 1
        self.metrics[key]["sum"] += duration_ms
        self.metrics[key]["min"] = min(self.metrics[key]["min"], duration_ms)
        self.metrics[key]["max"] = max(self.metrics[key]["max"], duration_ms)

        self.logger.debug(
            "metric",
            metric_type="latency",
            operation=operation,
            duration_ms=duration_ms,
            tags=tags or {}
        )

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric"""

        if name not in self.metrics:
            self.metrics[name] = 0
        self.metrics[name] += value

        self.logger.debug(
            "metric",
            metric_type="counter",
            name=name,
            value=value,
            tags=tags or {}
        )

    def get_counter(self, name: str) -> int:
        value = self.metrics.get(name, 0)
        return value if isinstance(value, int) else 0

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get summary of all metrics"""

        summary = {}
        for key, value in self.metrics.items():
            if isinstance(value, dict) and "count" in value:
                # Latency metric
                summary[key] = {
                    "count": value["count"],
                    "avg": value["sum"] / value["count"] if value["count"] > 0 else 0,
                    "min": value["min"] if value["min"] != float('inf') else 0,
                    "max": value["max"]
                }
            else:
                summary[key] = value

        return summary
