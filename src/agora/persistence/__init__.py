"""Audit log and state snapshot persistence."""

from agora.persistence.event_log import EventKind, EventLog, EventLogError, EventRecord
from agora.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventLogError", "EventRecord", "StateStore"]
