"""
Declarative field rules and the walker that turns payloads into measure values
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple, Union

import structlog

from src.models.measures import MeasureValue, MeasureValueType
from src.utils.json_path import MISSING, get_path
from src.utils.time_utils import to_millis

logger = structlog.get_logger()

# Indexed entries emitted per array; the true length is always kept
ARRAY_FLATTEN_LIMIT = 5


class Presence(str, Enum):
    """Whether GitHub sends a field on every payload of the event type"""

    ALWAYS = "always"
    OPTIONAL = "optional"


@dataclass(frozen=True)
class FieldRule:
    """Maps one JSON path to one typed output field"""

    path: str
    name: str
    type: MeasureValueType
    presence: Presence = Presence.OPTIONAL


@dataclass(frozen=True)
class ArrayRule:
    """Flattens an array of sub-objects into indexed, bounded fields"""

    path: str
    name: str
    fields: Tuple[FieldRule, ...] = ()
    presence: Presence = Presence.OPTIONAL


Rule = Union[FieldRule, ArrayRule]


def scalar(
    path: str,
    value_type: MeasureValueType,
    name: Optional[str] = None,
    always: bool = False,
) -> FieldRule:
    """Build a FieldRule whose output name defaults to the path with underscores"""
    return FieldRule(
        path=path,
        name=name or path.replace(".", "_"),
        type=value_type,
        presence=Presence.ALWAYS if always else Presence.OPTIONAL,
    )


def array(path: str, *fields: FieldRule, name: Optional[str] = None, always: bool = False) -> ArrayRule:
    return ArrayRule(
        path=path,
        name=name or path.replace(".", "_"),
        fields=tuple(fields),
        presence=Presence.ALWAYS if always else Presence.OPTIONAL,
    )


def coerce_value(value: Any, value_type: MeasureValueType) -> Optional[str]:
    """
    Serialize a JSON value as the string form of `value_type`

    Returns None when the value is absent or cannot be represented as the
    requested type. JSON booleans are never accepted as numbers.
    """
    if value is MISSING or value is None:
        return None

    if value_type == MeasureValueType.INT64:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, str):
            try:
                return str(int(value.strip()))
            except ValueError:
                return None
        return None

    if value_type == MeasureValueType.DOUBLE:
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        return str(number)

    if value_type == MeasureValueType.BOOL:
        if isinstance(value, bool):
            return "true" if value else "false"
        return None

    if value_type == MeasureValueType.STRING:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
        return None

    if value_type == MeasureValueType.TIMESTAMP:
        millis = to_millis(value)
        return str(millis) if millis is not None else None

    return None


def _walk_field(
    tree: Any,
    rule: FieldRule,
    output_name: str,
    values: List[MeasureValue],
    missing: Optional[List[str]],
) -> None:
    raw = get_path(tree, rule.path)
    if raw is MISSING:
        if rule.presence == Presence.ALWAYS and missing is not None:
            missing.append(output_name)
        return

    serialized = coerce_value(raw, rule.type)
    if serialized is None:
        logger.debug(
            "Dropping field that does not match its declared type",
            field=output_name,
            declared_type=rule.type.value,
            python_type=type(raw).__name__,
        )
        return

    values.append(MeasureValue(name=output_name, type=rule.type, value=serialized))


def _walk_array(
    tree: Any,
    rule: ArrayRule,
    output_name: str,
    values: List[MeasureValue],
    missing: Optional[List[str]],
) -> None:
    items = get_path(tree, rule.path)
    if not isinstance(items, list):
        if rule.presence == Presence.ALWAYS and missing is not None:
            missing.append(f"{output_name}_length")
        return

    values.append(
        MeasureValue(
            name=f"{output_name}_length",
            type=MeasureValueType.INT64,
            value=str(len(items)),
        )
    )
    for index, item in enumerate(items[:ARRAY_FLATTEN_LIMIT]):
        for sub_rule in rule.fields:
            _walk_field(item, sub_rule, f"{output_name}_{index}_{sub_rule.name}", values, None)


def walk_rules(
    tree: Any,
    rules: Iterable[Rule],
    prefix: str = "",
    missing: Optional[List[str]] = None,
) -> List[MeasureValue]:
    """
    Evaluate rules against a JSON tree in declaration order

    Absent fields are skipped, never emitted as placeholders. Names of
    ALWAYS-present fields that were absent are appended to `missing` when a
    list is supplied.
    """
    values: List[MeasureValue] = []
    for rule in rules:
        output_name = f"{prefix}{rule.name}"
        if isinstance(rule, ArrayRule):
            _walk_array(tree, rule, output_name, values, missing)
        else:
            _walk_field(tree, rule, output_name, values, missing)
    return values
