import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Event names shared with the product analytics taxonomy
RECORDING_STARTED = "Recording Started"
RECORDING_STOPPED = "Recording Stopped"
ERROR_OCCURRED = "Error Occurred"


class TelemetryContext:
    """Where a component sends product events. Passed in, never global."""

    def track(self, event: str, properties: Optional[Dict[str, Any]] = None):
        raise NotImplementedError


class NullTelemetry(TelemetryContext):
    def track(self, event: str, properties: Optional[Dict[str, Any]] = None):
        pass


class LoggingTelemetry(TelemetryContext):
    def __init__(self, name: str = "locuta.telemetry"):
        self._logger = logging.getLogger(name)

    def track(self, event: str, properties: Optional[Dict[str, Any]] = None):
        self._logger.info(f"{event}: {properties or {}}")
