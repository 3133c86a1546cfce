"""
Custom data submission models
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from . import measures


class CustomDimension(BaseModel):
    """Dimension supplied by an external client"""

    Name: str
    Value: str

    @field_validator("Value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value


class CustomMeasureValue(BaseModel):
    """One entry of a custom multi measure"""

    Name: str
    Type: str
    Value: Any

    @field_validator("Type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        measures.MeasureValueType.parse(value)
        return value


class CustomDataPayload(BaseModel):
    """
    Custom data record submitted outside of GitHub webhooks

    Mirrors the Timestream record layout so that CI jobs can push their own
    metrics next to webhook data. Time, when given, overrides the arrival
    time so clients may backfill.
    """

    model_config = ConfigDict(extra="allow")

    Dimensions: List[CustomDimension]
    MeasureName: str
    MeasureValueType: str
    MeasureValue: Optional[Any] = None
    MeasureValues: Optional[List[CustomMeasureValue]] = None
    Time: Optional[Union[int, float, str]] = None

    @field_validator("MeasureValueType")
    @classmethod
    def _known_value_type(cls, value: str) -> str:
        measures.MeasureValueType.parse(value)
        return value

    @model_validator(mode="after")
    def _has_measure_value(self) -> "CustomDataPayload":
        if self.MeasureValue is None and self.MeasureValues is None:
            raise ValueError("Either MeasureValue or MeasureValues is required")
        return self
