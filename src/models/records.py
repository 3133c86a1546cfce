"""
Request, event and output record models for the ingestion pipeline
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from src.utils.time_utils import MAX_MILLIS, MIN_MILLIS, format_millis

from .measures import Measure, MultiMeasure


@dataclass(frozen=True)
class InboundRequest:
    """Raw HTTP request as received from the gateway"""

    body: Optional[Union[bytes, str]]
    headers: Mapping[str, str] = field(default_factory=dict)
    is_base64_encoded: bool = False
    source_ip: Optional[str] = None


@dataclass(frozen=True)
class VerifiedEvent:
    """Event metadata, only ever built after the signature check passed"""

    event_type: str
    delivery_id: str
    raw_body: str


@dataclass(frozen=True)
class NormalizedEvent:
    """A verified event together with its parsed payload"""

    verified: VerifiedEvent
    payload: Dict[str, Any]

    @property
    def event_type(self) -> str:
        return self.verified.event_type

    @property
    def delivery_id(self) -> str:
        return self.verified.delivery_id


class Dimension(BaseModel):
    """A named string tag attached to every record"""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class OutputRecord(BaseModel):
    """Write-ready record: common dimensions, one measure and a timestamp"""

    model_config = ConfigDict(frozen=True)

    dimensions: Tuple[Dimension, ...]
    measure: Measure
    timestamp: int = Field(ge=MIN_MILLIS, le=MAX_MILLIS)

    def dimension(self, name: str) -> Optional[str]:
        for dimension in self.dimensions:
            if dimension.name == name:
                return dimension.value
        return None

    @property
    def event_type(self) -> Optional[str]:
        return self.dimension("event_type")

    def to_timestream_record(self) -> Dict[str, Any]:
        """Record in the shape accepted by Timestream WriteRecords"""
        record: Dict[str, Any] = {
            "Dimensions": [
                {"Name": d.name, "Value": d.value, "DimensionValueType": "VARCHAR"}
                for d in self.dimensions
            ],
            "MeasureName": self.measure.name,
            "MeasureValueType": self.measure.value_type.wire_name,
            "Time": str(self.timestamp),
            "TimeUnit": "MILLISECONDS",
        }
        if isinstance(self.measure, MultiMeasure):
            record["MeasureValues"] = [
                {"Name": v.name, "Value": v.value, "Type": v.type.wire_name}
                for v in self.measure.values
            ]
        else:
            record["MeasureValue"] = self.measure.value
        return record

    def to_flat_dict(self) -> Dict[str, Any]:
        """One flat row for object storage and log streams"""
        row: Dict[str, Any] = {
            "timestamp": format_millis(self.timestamp),
            "timestamp_ms": self.timestamp,
        }
        for dimension in self.dimensions:
            row[dimension.name] = dimension.value
        row["measure_name"] = self.measure.name
        row["measure_value_type"] = self.measure.value_type.wire_name
        if isinstance(self.measure, MultiMeasure):
            for measure_value in self.measure.values:
                row[measure_value.name] = measure_value.value
        else:
            row[self.measure.name] = self.measure.value
        return row


@dataclass(frozen=True)
class WriteAck:
    """Acknowledgement returned by a sink after a successful write"""

    sink: str
    record_id: Optional[str] = None


@dataclass
class IngestionResult:
    """Outcome of one handled webhook or custom data submission"""

    event_type: str
    record: OutputRecord
    ack: WriteAck
    warnings: List[str] = field(default_factory=list)
