"""
Data models and schemas for the application
"""

from .measures import (
    FALLBACK_MEASURE,
    Measure,
    MeasureValue,
    MeasureValueType,
    MultiMeasure,
    SingleMeasure,
)
from .records import (
    Dimension,
    InboundRequest,
    IngestionResult,
    NormalizedEvent,
    OutputRecord,
    VerifiedEvent,
    WriteAck,
)
from .custom_data import CustomDataPayload, CustomDimension, CustomMeasureValue

__all__ = [
    "FALLBACK_MEASURE",
    "Measure",
    "MeasureValue",
    "MeasureValueType",
    "MultiMeasure",
    "SingleMeasure",
    "Dimension",
    "InboundRequest",
    "IngestionResult",
    "NormalizedEvent",
    "OutputRecord",
    "VerifiedEvent",
    "WriteAck",
    "CustomDataPayload",
    "CustomDimension",
    "CustomMeasureValue",
]
