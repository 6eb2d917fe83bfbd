"""
Recurring series materialization and cascade edits.

A series is a list of independent ``Event`` records sharing one
``recurring_group_id`` (the id of the head event).  Occurrences are
generated once, when the series is created or a standalone event is
converted; afterwards each instance lives on its own.  A cascade edit
rewrites the shared fields of every instance but leaves each instance on
its own date, moving it only within its week when the weekday changes.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Optional

from ..core.errors import ValidationError
from ..schemas.event import Event, RecurringPattern, ensure_aware


logger = logging.getLogger(__name__)

# Fields copied from the template into every generated occurrence.
SHARED_FIELDS = (
    "title",
    "type",
    "location",
    "description",
    "notes",
    "teams",
    "organizing_team",
    "is_open_access",
    "invited_players",
    "created_by",
    "recurring_pattern",
    "recurring_end_date",
)

# Fields a cascade edit writes uniformly onto every instance.
CASCADE_FIELDS = (
    "title",
    "type",
    "location",
    "description",
    "notes",
    "teams",
    "organizing_team",
    "is_open_access",
    "invited_players",
)

_STEP_DAYS = {
    RecurringPattern.WEEKLY: 7,
    RecurringPattern.BIWEEKLY: 14,
}


def add_months(value: datetime, months: int, anchor_day: Optional[int] = None) -> datetime:
    """Shift ``value`` by whole months keeping the clock time.

    The day of month is ``anchor_day`` (default: the day of ``value``)
    clamped to the length of the target month, so a series started on
    the 31st lands on the last day of shorter months and returns to the
    31st afterwards.
    """
    day = anchor_day or value.day
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(day, last_day))


def occurrence_starts(start: datetime, pattern: RecurringPattern, end: datetime) -> List[datetime]:
    """Start times of every occurrence from ``start`` through ``end``.

    ``end`` is inclusive by calendar date: an occurrence on the end date
    is generated whatever its clock time.
    """
    pattern = RecurringPattern(pattern)
    start = ensure_aware(start)
    last_date = ensure_aware(end).date()
    starts: List[datetime] = []
    step = 0
    current = start
    while current.date() <= last_date:
        starts.append(current)
        step += 1
        if pattern == RecurringPattern.MONTHLY:
            current = add_months(start, step, anchor_day=start.day)
        else:
            current = start + timedelta(days=_STEP_DAYS[pattern] * step)
    return starts


def expand_series(
    template: Event,
    pattern: RecurringPattern,
    end: datetime,
    new_id: Callable[[], str],
) -> List[Event]:
    """Materialize a series from ``template``.

    The first element is the template itself turned into the series
    head; the remaining elements are fresh instances with ids drawn from
    ``new_id``.  Instances copy the template's shared fields and keep its
    duration and voting deadline offset; responses are not copied.
    """
    starts = occurrence_starts(template.start_time, pattern, end)
    if not starts:
        raise ValidationError("The recurrence does not produce any event")
    duration = template.end_time - template.start_time
    deadline_offset = (
        template.start_time - template.voting_deadline if template.voting_deadline else None
    )
    head = template.model_copy(update={
        "is_recurring": True,
        "is_recurring_instance": False,
        "recurring_group_id": template.id,
        "recurring_pattern": RecurringPattern(pattern),
        "recurring_end_date": ensure_aware(end),
    })
    series = [head]
    for start in starts[1:]:
        shared = {name: getattr(head, name) for name in SHARED_FIELDS}
        shared["teams"] = list(head.teams)
        shared["invited_players"] = list(head.invited_players)
        series.append(Event(
            id=new_id(),
            start_time=start,
            end_time=start + duration,
            voting_deadline=start - deadline_offset if deadline_offset is not None else None,
            is_recurring_instance=True,
            recurring_group_id=head.id,
            original_start_time=template.start_time,
            **shared,
        ))
    logger.info(
        "Materialized %d events for series %s (%s until %s)",
        len(series), head.id, RecurringPattern(pattern).value, ensure_aware(end).date(),
    )
    return series


def _python_weekday(wire_weekday: int) -> int:
    """Convert 0=Sunday … 6=Saturday into ``date.weekday()`` numbering."""
    return (wire_weekday - 1) % 7


def shift_to_weekday(day: date, wire_weekday: int) -> date:
    """Move ``day`` to ``wire_weekday`` inside its Monday based week."""
    return day + timedelta(days=_python_weekday(wire_weekday) - day.weekday())


def _with_clock(day: date, clock: time, tzinfo) -> datetime:
    return datetime.combine(day, clock).replace(tzinfo=tzinfo)


def apply_series_update(
    instances: List[Event],
    changes: Dict,
    *,
    weekday: Optional[int] = None,
    reference: Optional[Event] = None,
) -> List[Event]:
    """Rewrite every instance of a series with ``changes``.

    ``changes`` holds snake_case event fields.  ``start_time`` and
    ``end_time`` only contribute their clock time; ``weekday`` moves each
    instance within its own week.  A new ``voting_deadline`` is taken
    relative to the start of ``reference`` (the edited event) and that
    offset is applied to every instance; otherwise instances keep their
    own offset.
    """
    new_start = ensure_aware(changes.get("start_time"))
    new_end = ensure_aware(changes.get("end_time"))
    shared = {k: v for k, v in changes.items() if k in CASCADE_FIELDS}
    new_offset = None
    if changes.get("voting_deadline") is not None:
        anchor = new_start or (reference.start_time if reference else None)
        if anchor is None:
            raise ValidationError("A series deadline needs a reference start time")
        new_offset = anchor - ensure_aware(changes["voting_deadline"])
    updated: List[Event] = []
    for instance in instances:
        day = instance.start_time.date()
        if weekday is not None:
            day = shift_to_weekday(day, weekday)
        span_days = (instance.end_time.date() - instance.start_time.date()).days
        start_clock = (new_start or instance.start_time).timetz()
        end_clock = (new_end or instance.end_time).timetz()
        tzinfo = instance.start_time.tzinfo
        start = _with_clock(day, start_clock.replace(tzinfo=None), start_clock.tzinfo or tzinfo)
        end = _with_clock(day + timedelta(days=span_days), end_clock.replace(tzinfo=None),
                          end_clock.tzinfo or tzinfo)
        if end <= start:
            end += timedelta(days=1)
        update = dict(shared)
        update["start_time"] = start
        update["end_time"] = end
        if new_offset is not None:
            update["voting_deadline"] = start - new_offset
        elif "voting_deadline" in changes:
            update["voting_deadline"] = None
        elif instance.voting_deadline is not None:
            update["voting_deadline"] = start - (instance.start_time - instance.voting_deadline)
        updated.append(instance.model_copy(update=update))
    logger.info("Cascaded update over %d series events", len(updated))
    return updated
