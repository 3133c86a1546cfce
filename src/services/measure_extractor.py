"""
Event-type driven measure extraction for GitHub webhook payloads
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import structlog

from src.models.measures import (
    FALLBACK_MEASURE,
    Measure,
    MeasureValue,
    MeasureValueType,
    MultiMeasure,
    SingleMeasure,
)
from src.utils.json_path import MISSING, get_path
from src.utils.time_utils import to_millis
from .measure_rules import Rule, array, coerce_value, scalar, walk_rules

logger = structlog.get_logger()

INT = MeasureValueType.INT64
STR = MeasureValueType.STRING
BOOL = MeasureValueType.BOOL
TS = MeasureValueType.TIMESTAMP

CUSTOM_DATA_EVENT = "custom_data"


@dataclass(frozen=True)
class RuleSection:
    """Rules evaluated against one sub-object of the payload under a name prefix"""

    root: str
    rules: Tuple[Rule, ...]
    prefix: str


@dataclass(frozen=True)
class EventExtraction:
    """How one event type becomes one measure"""

    measure_name: str
    sections: Tuple[RuleSection, ...]


PUSH_RULES: Tuple[Rule, ...] = (
    scalar("after", STR, always=True),
    scalar("base_ref", STR),
    scalar("before", STR, always=True),
    array("commits", always=True),
    scalar("compare", STR),
    scalar("created", BOOL, always=True),
    scalar("deleted", BOOL, always=True),
    scalar("forced", BOOL, always=True),
    scalar("head_commit.id", STR),
    scalar("head_commit.timestamp", TS),
    scalar("pusher.name", STR, always=True),
    scalar("ref", STR, always=True),
)

# Walked from the pull_request object; shared by pull_request and
# pull_request_review under different prefixes
PULL_REQUEST_RULES: Tuple[Rule, ...] = (
    scalar("id", INT, always=True),
    scalar("number", INT, always=True),
    scalar("state", STR, always=True),
    scalar("title", STR),
    scalar("draft", BOOL),
    scalar("locked", BOOL),
    scalar("merged", BOOL),
    scalar("merged_at", TS),
    scalar("closed_at", TS),
    scalar("created_at", TS, always=True),
    scalar("updated_at", TS, always=True),
    scalar("user.login", STR, always=True),
    scalar("user.id", INT),
    scalar("assignee.login", STR),
    scalar("assignee.id", INT),
    array("assignees", scalar("login", STR), scalar("id", INT)),
    array("requested_reviewers", scalar("login", STR), scalar("id", INT)),
    array("labels", scalar("name", STR), scalar("id", INT)),
    scalar("head.ref", STR),
    scalar("head.sha", STR),
    scalar("base.ref", STR),
    scalar("base.sha", STR),
    scalar("auto_merge.merge_method", STR),
    scalar("auto_merge.enabled_by.login", STR),
    scalar("merge_commit_sha", STR),
    scalar("author_association", STR),
    scalar("commits", INT),
    scalar("additions", INT),
    scalar("deletions", INT),
    scalar("changed_files", INT),
    scalar("comments", INT),
    scalar("review_comments", INT),
)

REVIEW_RULES: Tuple[Rule, ...] = (
    scalar("id", INT, always=True),
    scalar("state", STR, always=True),
    scalar("submitted_at", TS),
    scalar("commit_id", STR),
    scalar("author_association", STR),
    scalar("user.login", STR),
    scalar("user.id", INT),
)

ISSUE_RULES: Tuple[Rule, ...] = (
    scalar("id", INT, always=True),
    scalar("number", INT, always=True),
    scalar("state", STR, always=True),
    scalar("state_reason", STR),
    scalar("title", STR),
    scalar("locked", BOOL),
    scalar("comments", INT),
    scalar("created_at", TS, always=True),
    scalar("updated_at", TS),
    scalar("closed_at", TS),
    scalar("user.login", STR),
    scalar("user.id", INT),
    scalar("assignee.login", STR),
    scalar("assignee.id", INT),
    array("assignees", scalar("login", STR), scalar("id", INT)),
    array("labels", scalar("name", STR), scalar("id", INT)),
    scalar("milestone.number", INT),
    scalar("milestone.title", STR),
    scalar("author_association", STR),
)

WORKFLOW_RUN_RULES: Tuple[Rule, ...] = (
    scalar("id", INT, always=True),
    scalar("name", STR),
    scalar("workflow_id", INT),
    scalar("run_number", INT),
    scalar("run_attempt", INT),
    scalar("event", STR),
    scalar("status", STR, always=True),
    scalar("conclusion", STR),
    scalar("head_branch", STR),
    scalar("head_sha", STR),
    scalar("created_at", TS),
    scalar("updated_at", TS),
    scalar("run_started_at", TS),
    scalar("actor.login", STR),
    scalar("triggering_actor.login", STR),
    array("pull_requests", scalar("number", INT), scalar("id", INT)),
)


def pull_request_section(prefix: str) -> RuleSection:
    """The pull request walk, named for the event it appears in"""
    return RuleSection(root="pull_request", rules=PULL_REQUEST_RULES, prefix=prefix)


EVENT_EXTRACTIONS: Dict[str, EventExtraction] = {
    "push": EventExtraction(
        measure_name="push",
        sections=(RuleSection(root="", rules=PUSH_RULES, prefix="push_"),),
    ),
    "pull_request": EventExtraction(
        measure_name="pull_request",
        sections=(pull_request_section("pr_"),),
    ),
    "pull_request_review": EventExtraction(
        measure_name="pull_request_review",
        sections=(
            pull_request_section("pr_rv_"),
            RuleSection(root="review", rules=REVIEW_RULES, prefix="rv_"),
        ),
    ),
    "issues": EventExtraction(
        measure_name="issues",
        sections=(RuleSection(root="issue", rules=ISSUE_RULES, prefix="issue_"),),
    ),
    "workflow_run": EventExtraction(
        measure_name="workflow_run",
        sections=(RuleSection(root="workflow_run", rules=WORKFLOW_RUN_RULES, prefix="wr_"),),
    ),
}


def supported_event_types() -> Tuple[str, ...]:
    return tuple(EVENT_EXTRACTIONS) + (CUSTOM_DATA_EVENT,)


def extract(event_type: str, payload: Any) -> Measure:
    """
    Map a webhook payload to exactly one measure

    Total over all inputs: unknown event types, and known ones whose payload
    yields no usable field, produce the fallback measure so that every
    delivery is still counted.
    """
    if event_type == CUSTOM_DATA_EVENT:
        return extract_custom_measure(payload)

    extraction = EVENT_EXTRACTIONS.get(event_type)
    if extraction is None:
        logger.debug("No extraction rules for event type", event_type=event_type)
        return FALLBACK_MEASURE

    if not isinstance(payload, dict):
        payload = {}

    values: List[MeasureValue] = []
    missing: List[str] = []
    for section in extraction.sections:
        tree = get_path(payload, section.root) if section.root else payload
        values.extend(walk_rules(tree, section.rules, section.prefix, missing))

    if missing:
        logger.info(
            "Expected fields missing from payload",
            event_type=event_type,
            missing_count=len(missing),
            missing_fields=missing[:10],
        )

    if not values:
        return FALLBACK_MEASURE

    return MultiMeasure(name=extraction.measure_name, values=tuple(values))


def _coerce_custom_value(value: Any, value_type: MeasureValueType) -> Optional[str]:
    """Custom clients send Timestream-style string values; accept those too"""
    if value_type == MeasureValueType.BOOL and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered
        return None
    if value_type == MeasureValueType.TIMESTAMP:
        millis = to_millis(value, numeric_unit="ms")
        return str(millis) if millis is not None else None
    return coerce_value(value, value_type)


def extract_custom_measure(payload: Any) -> Measure:
    """
    Pass a client-built measure through unchanged in meaning

    Invalid submissions fall back rather than raise; the custom data API
    validates before it gets here.
    """
    measure_name = get_path(payload, "MeasureName")
    raw_type = get_path(payload, "MeasureValueType")
    if not isinstance(measure_name, str) or not measure_name or raw_type is MISSING:
        return FALLBACK_MEASURE

    try:
        value_type = MeasureValueType.parse(raw_type)
    except ValueError:
        logger.warning("Unknown custom measure type", measure_value_type=raw_type)
        return FALLBACK_MEASURE

    if value_type != MeasureValueType.MULTI:
        serialized = _coerce_custom_value(get_path(payload, "MeasureValue"), value_type)
        if serialized is None:
            return FALLBACK_MEASURE
        return SingleMeasure(name=measure_name, value_type=value_type, value=serialized)

    entries = get_path(payload, "MeasureValues")
    if not isinstance(entries, list):
        return FALLBACK_MEASURE

    values: List[MeasureValue] = []
    for entry in entries:
        name = get_path(entry, "Name")
        entry_type = get_path(entry, "Type")
        if not isinstance(name, str) or entry_type is MISSING:
            continue
        try:
            parsed_type = MeasureValueType.parse(entry_type)
        except ValueError:
            logger.warning("Skipping custom value with unknown type", name=name, type=entry_type)
            continue
        if parsed_type == MeasureValueType.MULTI:
            continue
        serialized = _coerce_custom_value(get_path(entry, "Value"), parsed_type)
        if serialized is None:
            continue
        values.append(MeasureValue(name=name, type=parsed_type, value=serialized))

    if not values:
        return FALLBACK_MEASURE
    return MultiMeasure(name=measure_name, values=tuple(values))
