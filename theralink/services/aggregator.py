"""
Read-model aggregation

Builds denormalized, view-ready records from a primary query plus batched
secondary lookups (profile names, related appointments...). The database has
no relationship-level join for these projections, so each lookup collects the
distinct foreign ids across ALL primary rows and resolves them with a single
IN (...) query before merging.

Error policy:
- primary query failure aborts the aggregation with AggregationError
- secondary lookup failure (or a missing row) degrades to the lookup default
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ..models import Appointment, Profile

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown Client"
UNKNOWN_THERAPIST = "Unknown Therapist"
UNKNOWN_SENDER = "Unknown Sender"
ANONYMOUS_CLIENT = "Anonymous Client"


class AggregationError(Exception):
    """Primary query of an aggregation failed; surfaced as a single user-visible error"""

    def __init__(self, label: str, cause: Optional[Exception] = None):
        self.label = label
        self.cause = cause
        super().__init__(f"Failed to load {label}")


@dataclass
class Lookup:
    """A batched secondary lookup merged into every primary record.

    key: extracts the foreign id from a primary row (None skips the lookup)
    fetch: resolves a set of ids to {id: value} in one round trip
    default: value used when the id is missing or the fetch failed
    """

    name: str
    key: Callable[[Any], Optional[str]]
    fetch: Callable[[set], dict]
    default: Any = None


def _run_lookup(label: str, lookup: Lookup, rows: list) -> dict:
    ids = {k for k in (lookup.key(row) for row in rows) if k is not None}
    if not ids:
        return {}
    try:
        return lookup.fetch(ids) or {}
    except Exception as e:
        logger.warning(
            f"⚠️ Lookup '{lookup.name}' failed while loading {label}, using defaults: {e}"
        )
        return {}


def aggregate(
    label: str,
    primary: Callable[[], Iterable],
    lookups: list[Lookup],
    build: Callable[[Any, dict], dict],
) -> list[dict]:
    """
    Run the primary query, resolve every lookup in one batch, and merge.

    Args:
        label: human readable name of the view (used in errors and logs)
        primary: returns rows in the order the view must keep
        lookups: secondary batched lookups
        build: (row, resolved) -> view record; resolved maps lookup name to value

    Returns:
        View records in primary order, one per primary row
    """
    try:
        rows = list(primary())
    except Exception as e:
        logger.error(f"❌ Failed to load {label}: {e}")
        raise AggregationError(label, e) from e

    mappings = {lookup.name: _run_lookup(label, lookup, rows) for lookup in lookups}

    records = []
    for row in rows:
        resolved = {}
        for lookup in lookups:
            key = lookup.key(row)
            value = mappings[lookup.name].get(key) if key is not None else None
            resolved[lookup.name] = value if value is not None else lookup.default
        records.append(build(row, resolved))

    logger.debug(f"✅ Aggregated {len(records)} {label}")
    return records


# ============================================================================
# BATCH FETCHERS
# ============================================================================


def fetch_profiles(db: Session) -> Callable[[set], dict]:
    """Batch fetcher resolving profile ids to Profile rows"""

    def fetch(ids: set) -> dict:
        profiles = db.query(Profile).filter(Profile.id.in_(ids)).all()
        return {p.id: p for p in profiles}

    return fetch


def fetch_appointments(db: Session) -> Callable[[set], dict]:
    """Batch fetcher resolving appointment ids to Appointment rows"""

    def fetch(ids: set) -> dict:
        appointments = db.query(Appointment).filter(Appointment.id.in_(ids)).all()
        return {a.id: a for a in appointments}

    return fetch


def profile_summary(profile: Optional[Profile], default_name: str) -> dict:
    """Name/avatar projection of a profile with graceful fallback"""
    if profile is None:
        return {"full_name": default_name, "profile_image_url": None}
    return {
        "full_name": profile.full_name or default_name,
        "profile_image_url": profile.profile_image_url,
    }


# ============================================================================
# DERIVED AGGREGATES (pure functions over a fetched set)
# ============================================================================


def sum_amounts(items: Iterable, attr: str = "amount") -> float:
    return float(sum((getattr(i, attr) or 0) for i in items))


def average(values: list) -> float:
    """Arithmetic mean, 0 for an empty list"""
    if not values:
        return 0.0
    return sum(values) / len(values)


def percentage(part: float, whole: float) -> int:
    if not whole:
        return 0
    return round(part / whole * 100)


def month_label(value: datetime) -> str:
    """Chart label such as 'May 2025'"""
    return value.strftime("%b %Y")


def monthly_totals(
    items: Iterable,
    when: Callable[[Any], datetime],
    amount: Callable[[Any], float] = lambda _: 1,
    chronological: bool = False,
) -> list[dict]:
    """
    Bucket items by calendar month.

    Buckets keep first-seen order of the input unless chronological=True,
    in which case they are sorted oldest month first.
    """
    buckets: "OrderedDict[tuple, dict]" = OrderedDict()
    for item in items:
        ts = when(item)
        key = (ts.year, ts.month)
        if key not in buckets:
            buckets[key] = {"month": month_label(ts), "value": 0}
        buckets[key]["value"] += amount(item)

    keys = sorted(buckets) if chronological else list(buckets)
    return [buckets[k] for k in keys]


def group_totals(
    items: Iterable,
    group: Callable[[Any], str],
    amount: Callable[[Any], float] = lambda _: 1,
) -> list[dict]:
    """[{"name": group, "value": total}] in first-seen order"""
    totals: "OrderedDict[str, float]" = OrderedDict()
    for item in items:
        name = group(item)
        totals[name] = totals.get(name, 0) + amount(item)
    return [{"name": name, "value": value} for name, value in totals.items()]
