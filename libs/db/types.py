"""Database-agnostic column types.

The service runs on PostgreSQL; the test suite runs on SQLite through
aiosqlite. These types behave the same on both.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.types import TypeDecorator

from libs.common.datetime_utils import ensure_utc

# JSON instead of JSONB so the same models create on SQLite.
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) elsewhere.
GUID = Uuid


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime.

    SQLite drops tzinfo on the way back; values are re-tagged as UTC on load
    so comparisons against ``utc_now()`` never mix naive and aware values.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return ensure_utc(value)
