"""
Assembles write-ready records from events and extracted measures
"""

from typing import Any, Callable, List, Optional, Tuple

import structlog

from src.models.measures import Measure, MeasureValueType
from src.models.records import Dimension, OutputRecord, VerifiedEvent
from src.utils.json_path import MISSING, get_path
from src.utils.time_utils import now_millis, to_millis
from .measure_rules import scalar, walk_rules

logger = structlog.get_logger()

COMMON_DIMENSION_RULES = (
    scalar("repository.id", MeasureValueType.INT64),
    scalar("repository.name", MeasureValueType.STRING),
    scalar("repository.full_name", MeasureValueType.STRING),
    scalar("organization.id", MeasureValueType.INT64),
    scalar("organization.login", MeasureValueType.STRING),
    scalar("sender.id", MeasureValueType.INT64),
    scalar("sender.login", MeasureValueType.STRING),
    scalar("action", MeasureValueType.STRING),
)


def common_dimensions(verified: VerifiedEvent, payload: Any) -> Tuple[Dimension, ...]:
    """Identity and context dimensions shared by every event type"""
    dimensions: List[Dimension] = [
        Dimension(name="event_type", value=verified.event_type),
        Dimension(name="delivery_id", value=verified.delivery_id),
    ]
    for value in walk_rules(payload, COMMON_DIMENSION_RULES):
        dimensions.append(Dimension(name=value.name, value=value.value))
    return tuple(dimensions)


def assemble(
    verified: VerifiedEvent,
    payload: Any,
    measure: Measure,
    timestamp_ms: Optional[int] = None,
    clock: Callable[[], int] = now_millis,
) -> OutputRecord:
    """Build the record for one webhook delivery, stamped with arrival time"""
    return OutputRecord(
        dimensions=common_dimensions(verified, payload),
        measure=measure,
        timestamp=timestamp_ms if timestamp_ms is not None else clock(),
    )


def custom_dimensions(payload: Any) -> Tuple[Dimension, ...]:
    """Dimensions supplied by a custom data client, first occurrence wins"""
    dimensions: List[Dimension] = [Dimension(name="event_type", value="custom_data")]
    seen = {"event_type"}
    entries = get_path(payload, "Dimensions")
    if not isinstance(entries, list):
        return tuple(dimensions)

    for entry in entries:
        name = get_path(entry, "Name")
        value = get_path(entry, "Value")
        if not isinstance(name, str) or not name or value is MISSING or name in seen:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        dimensions.append(Dimension(name=name, value=str(value)))
        seen.add(name)
    return tuple(dimensions)


def supplied_time_millis(payload: Any) -> Optional[int]:
    """Caller-supplied Time in epoch milliseconds, or None when absent or unusable"""
    supplied_time = get_path(payload, "Time")
    if supplied_time is MISSING:
        return None
    timestamp = to_millis(supplied_time, numeric_unit="ms")
    if timestamp is None:
        logger.warning("Ignoring unparseable custom data Time", time=str(supplied_time))
    return timestamp


def assemble_custom(
    payload: Any,
    measure: Measure,
    clock: Callable[[], int] = now_millis,
) -> OutputRecord:
    """
    Build the record for a custom data submission

    A client-supplied Time wins over arrival time so external jobs can
    backfill. Numbers are read as epoch milliseconds.
    """
    timestamp = supplied_time_millis(payload)
    return OutputRecord(
        dimensions=custom_dimensions(payload),
        measure=measure,
        timestamp=timestamp if timestamp is not None else clock(),
    )
