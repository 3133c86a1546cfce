"""
Typed measure models written to the time-series sink
"""

from enum import Enum
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict


class MeasureValueType(str, Enum):
    """Measure value types"""

    INT64 = "INT64"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    BOOL = "BOOL"
    TIMESTAMP = "TIMESTAMP"
    MULTI = "MULTI"

    @property
    def wire_name(self) -> str:
        """Type name understood by the time-series store"""
        return _WIRE_NAMES[self]

    @classmethod
    def parse(cls, name: str) -> "MeasureValueType":
        """Accept either an internal or a wire type name"""
        key = str(name).strip().upper()
        if key in cls.__members__:
            return cls[key]
        for member, wire in _WIRE_NAMES.items():
            if wire == key:
                return member
        raise ValueError(f"Unknown measure value type: {name}")


_WIRE_NAMES = {
    MeasureValueType.INT64: "BIGINT",
    MeasureValueType.DOUBLE: "DOUBLE",
    MeasureValueType.STRING: "VARCHAR",
    MeasureValueType.BOOL: "BOOLEAN",
    MeasureValueType.TIMESTAMP: "TIMESTAMP",
    MeasureValueType.MULTI: "MULTI",
}


class MeasureValue(BaseModel):
    """One named, typed value inside a multi measure"""

    model_config = ConfigDict(frozen=True)

    name: str
    type: MeasureValueType
    value: str


class SingleMeasure(BaseModel):
    """A measure carrying one value"""

    model_config = ConfigDict(frozen=True)

    name: str
    value_type: MeasureValueType
    value: str

    @property
    def is_multi(self) -> bool:
        return False


class MultiMeasure(BaseModel):
    """A measure carrying an ordered set of values"""

    model_config = ConfigDict(frozen=True)

    name: str
    value_type: MeasureValueType = MeasureValueType.MULTI
    values: Tuple[MeasureValue, ...] = ()

    @property
    def is_multi(self) -> bool:
        return True

    def get(self, name: str):
        """Return the value named `name`, or None"""
        for measure_value in self.values:
            if measure_value.name == name:
                return measure_value
        return None

    def names(self) -> Tuple[str, ...]:
        return tuple(measure_value.name for measure_value in self.values)


Measure = Union[SingleMeasure, MultiMeasure]

FALLBACK_MEASURE = SingleMeasure(
    name="dummyMeasure", value_type=MeasureValueType.INT64, value="1"
)
