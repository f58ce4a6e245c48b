from .store import (
    SessionLogEntry,
    SessionLogger,
    record_session,
    topic_title_for,
)
