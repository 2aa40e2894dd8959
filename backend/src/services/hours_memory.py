"""
Per-site, per-day summary of worked hours by operator.

The editor records the summary on every row change so that other views
(e.g. the daily operators panel) can show who is present and whether
their hours are complete without re-reading the report.
"""

import time
from collections import defaultdict
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from src.schemas.report_document import ReportRowDraft
from src.schemas.reports import HoursStatus
from src.utils.logger import get_logger
from src.utils.report_text import is_finite_number, parse_numeric, safe_str

log = get_logger(__name__)

HOURS_UPDATED_TOPIC = "report-hours-updated"

Handler = Callable[[str], Any]


class KeyValueCache(Protocol):
    """Local key/value store with a minimal publish/subscribe channel."""

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any]) -> None: ...

    def publish(self, topic: str, key: str) -> None: ...

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]: ...


class InMemoryKeyValueCache:
    """Process-local KeyValueCache."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = dict(value)

    def publish(self, topic: str, key: str) -> None:
        for handler in list(self._subscribers.get(topic, ())):
            try:
                handler(key)
            except Exception as e:
                log.warning("cache subscriber failed", topic=topic, error=str(e))

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)

        return unsubscribe


def hours_key(prefix: str, site_code: Any, report_date: Any) -> str:
    if isinstance(report_date, date):
        report_date = report_date.isoformat()
    return f"{prefix}::{safe_str(site_code)}::{safe_str(report_date)}"


def compute_hours_and_leader(
    rows: Sequence[ReportRowDraft],
) -> tuple[Dict[str, float], Optional[str]]:
    """
    Sum positive hours per operator across canonical assignments.

    The leader is the first operator appearing in the report, whether or
    not they have hours. Totals are rounded to 0.1h.
    """
    totals: Dict[str, float] = {}
    leader: Optional[str] = None

    for row in rows:
        for item in row.operator_assignments:
            op_id = safe_str(item.operator_id)
            if not op_id:
                continue
            if leader is None:
                leader = op_id

            if is_finite_number(item.parsed_hours):
                hours = float(item.parsed_hours)
            else:
                hours = parse_numeric(item.raw_hours_text) or 0.0
            if hours <= 0:
                continue
            totals[op_id] = totals.get(op_id, 0.0) + hours

    return {k: round(v, 1) for k, v in totals.items()}, leader


def hours_status(hours: Optional[float], target_hours: float) -> HoursStatus:
    if hours is None or hours <= 0:
        return HoursStatus.ABSENT
    if hours < target_hours:
        return HoursStatus.INCOMPLETE
    return HoursStatus.COMPLETE


class HoursMemory:
    """Writes and reads the hours summary through a KeyValueCache."""

    def __init__(
        self,
        cache: KeyValueCache,
        key_prefix: str = "report-hours",
        target_hours: float = 8.0,
    ):
        self.cache = cache
        self.key_prefix = key_prefix
        self.target_hours = target_hours

    def record(
        self, site_code: Any, report_date: Any, rows: Sequence[ReportRowDraft]
    ) -> Optional[Dict[str, Any]]:
        """
        Store the summary for (site, date) and publish an update.

        Returns the stored payload, or None when site/date are unknown or
        the cache fails. Never raises.
        """
        if not safe_str(site_code) or not report_date:
            return None

        try:
            by_operator, leader = compute_hours_and_leader(rows)
            present = {safe_str(a.operator_id) for r in rows for a in r.operator_assignments}
            key = hours_key(self.key_prefix, site_code, report_date)
            payload = {
                "site_code": safe_str(site_code),
                "report_date": report_date.isoformat()
                if isinstance(report_date, date)
                else safe_str(report_date),
                "updated_at": int(time.time() * 1000),
                "by_operator_id": by_operator,
                "planned_by_operator_id": {op: self.target_hours for op in sorted(present) if op},
                "leader_operator_id": leader,
            }
            self.cache.set(key, payload)
            self.cache.publish(HOURS_UPDATED_TOPIC, key)
        except Exception as e:
            log.warning("hours memory update failed", site_code=safe_str(site_code), error=str(e))
            return None

        return payload

    def read(self, site_code: Any, report_date: Any) -> Optional[Dict[str, Any]]:
        """Stored payload for (site, date), or None."""
        if not safe_str(site_code) or not report_date:
            return None
        try:
            return self.cache.get(hours_key(self.key_prefix, site_code, report_date))
        except Exception as e:
            log.warning("hours memory read failed", error=str(e))
            return None

    def read_hours_summary(self, site_code: Any, report_date: Any) -> Dict[str, float]:
        """Hours by operator id for (site, date); empty when nothing is stored."""
        payload = self.read(site_code, report_date)
        if not payload:
            return {}

        out: Dict[str, float] = {}
        for op_id, value in (payload.get("by_operator_id") or {}).items():
            hours = parse_numeric(value)
            if hours is not None:
                out[str(op_id)] = hours
        return out

    def status_for(self, site_code: Any, report_date: Any, operator_id: Any) -> HoursStatus:
        summary = self.read_hours_summary(site_code, report_date)
        return hours_status(summary.get(safe_str(operator_id)), self.target_hours)
