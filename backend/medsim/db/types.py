"""Custom column types."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from medsim.core.clock import as_utc


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that is always stored and loaded as UTC.

    SQLite keeps no offset, so values are normalised on the way in and
    re-tagged with UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect):
        if value is None:
            return value
        utc_value = as_utc(value)
        if dialect.name == "sqlite":
            return utc_value.replace(tzinfo=None)
        return utc_value

    def process_result_value(self, value: Optional[datetime], dialect):
        if value is None:
            return value
        return as_utc(value)
