"""
Audit trail of host lifecycle events.

Records warnings and notable transitions per host (terminal failures,
unexpectedly modified secrets, invalid credentials) in a bounded buffer,
optionally persisted to a JSON file.

Usage:
    from baremetal.events import record_event, get_events

    record_event("bm-01", "SSHSecretUnexpectedlyModified",
                 "secret has been modified although a provisioned machine uses it")

    events = get_events(host="bm-01")

    # Isolated recorder (tests, one per controller)
    from baremetal.events import EventRecorder
    recorder = EventRecorder(log_file=None, max_events=50)
"""

import json
import logging
import re
import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MAX_EVENTS = 500
MAX_REDACTION_LENGTH = 10240  # Skip redaction on strings > 10KB

EVENT_NORMAL = "Normal"
EVENT_WARNING = "Warning"

# Order matters - more specific first
REDACTION_PATTERNS = [
    (re.compile(r'\b(password|passwd|pwd)\s*[=:]\s*\S+', re.IGNORECASE), r'\1=***REDACTED***'),
    (re.compile(r'\b(secret[_-]?id|token|api[_-]?key)\s*[=:]\s*\S+', re.IGNORECASE), r'\1=***REDACTED***'),
    (re.compile(r'\b(private[_-]?key)\s*[=:]\s*\S+', re.IGNORECASE), r'\1=***REDACTED***'),

    # PEM blocks (SSH private keys)
    (re.compile(r'-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----', re.DOTALL),
     '***REDACTED PRIVATE KEY***'),

    # Vault tokens
    (re.compile(r'\b(hvs|s)\.[A-Za-z0-9]{20,}'), '***REDACTED***'),
]


def _redact_sensitive(text: str, enabled: bool = True) -> str:
    """Remove secret material from event text."""
    if not enabled or not text:
        return text
    if len(text) > MAX_REDACTION_LENGTH:
        return text

    result = text
    for pattern, replacement in REDACTION_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


class EventRecorder:
    """
    Thread-safe bounded event trail.

    One recorder is shared by every host reconciled in the process; the
    buffer is guarded by a lock since hosts may be reconciled concurrently.
    """

    def __init__(
        self,
        log_file: Optional[Path] = None,
        max_events: int = MAX_EVENTS,
        redaction_enabled: bool = True,
    ):
        self._log_file = Path(log_file) if log_file else None
        self._max_events = max_events
        self._redaction_enabled = redaction_enabled
        self._events: deque = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._loaded = False

    @classmethod
    def from_settings(cls, settings=None) -> "EventRecorder":
        if settings is None:
            from config.settings import get_settings
            settings = get_settings()
        events = settings.events
        return cls(
            log_file=Path(events.log_file) if events.log_file else None,
            max_events=events.max_events,
            redaction_enabled=events.redaction_enabled,
        )

    def load(self) -> None:
        """Load persisted events, if a log file is configured."""
        if self._loaded:
            return
        self._loaded = True

        if self._log_file is None or not self._log_file.exists():
            return

        try:
            with open(self._log_file, "r") as f:
                events = json.load(f)
            self._events = deque(events[-self._max_events:], maxlen=self._max_events)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load event log {self._log_file}: {e}")
            self._events = deque(maxlen=self._max_events)

    def save(self) -> None:
        """Persist events to the log file, if configured."""
        if self._log_file is None:
            return
        try:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self._log_file.with_suffix(".tmp")
            with open(temp_file, "w") as f:
                json.dump(list(self._events), f, indent=2)
            temp_file.replace(self._log_file)
        except OSError as e:
            logger.error(f"Failed to save event log: {e}")

    def record(
        self,
        host: str,
        reason: str,
        message: str,
        event_type: str = EVENT_WARNING,
    ) -> dict:
        """
        Record an event against a host.

        Args:
            host: Host name
            reason: Short CamelCase reason (e.g. "SSHSecretUnexpectedlyModified")
            message: Human-readable detail; secret material is redacted
            event_type: EVENT_NORMAL or EVENT_WARNING

        Returns:
            The event dict that was recorded
        """
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "host": host,
            "type": event_type,
            "reason": reason,
            "message": _redact_sensitive(message, self._redaction_enabled),
        }

        with self._lock:
            self.load()
            self._events.append(event)
            self.save()

        log = logger.warning if event_type == EVENT_WARNING else logger.info
        log(f"[{host}] {reason}: {event['message']}", extra={"host": host, "reason": reason})
        return event

    def get_events(
        self,
        limit: int = 50,
        host: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> list[dict]:
        """
        Get events, most recent first.

        Args:
            limit: Maximum number of events to return
            host: Filter by host name
            reason: Filter by event reason
        """
        with self._lock:
            self.load()
            events = list(self._events)

        if host:
            events = [e for e in events if e.get("host") == host]
        if reason:
            events = [e for e in events if e.get("reason") == reason]

        return list(reversed(events[-limit:]))

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self.save()


# =============================================================================
# Module-level recorder
# =============================================================================

_recorder: Optional[EventRecorder] = None


def get_event_recorder() -> EventRecorder:
    """Process-wide recorder, created from settings on first use."""
    global _recorder
    if _recorder is None:
        _recorder = EventRecorder.from_settings()
    return _recorder


def record_event(host: str, reason: str, message: str, event_type: str = EVENT_WARNING) -> dict:
    return get_event_recorder().record(host, reason, message, event_type)


def get_events(limit: int = 50, host: Optional[str] = None, reason: Optional[str] = None) -> list[dict]:
    return get_event_recorder().get_events(limit=limit, host=host, reason=reason)
