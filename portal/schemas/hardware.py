from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuantityRequest(BaseModel):
    """Body of a checkout/checkin call; numeric strings are coerced."""

    quantity: int = Field(gt=0)

    @field_validator("quantity", mode="before")
    @classmethod
    def reject_boolean(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("quantity must be a number, not a boolean")
        return value


class HardwareCounts(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    capacity: int
    checked_out: int = Field(serialization_alias="checkedOut")


class HardwareSetOut(HardwareCounts):
    name: str


class HardwareStatusResponse(BaseModel):
    hardware: dict[str, HardwareCounts]


class HardwareResponse(BaseModel):
    hardware: HardwareSetOut


class BatchRequest(BaseModel):
    action: Literal["checkout", "checkin"]
    quantities: dict[str, int] = Field(default_factory=dict)

    @field_validator("quantities", mode="before")
    @classmethod
    def reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, dict) and any(isinstance(qty, bool) for qty in value.values()):
            raise ValueError("quantities must be numbers, not booleans")
        return value


class BatchResponse(BaseModel):
    hardware: dict[str, HardwareSetOut] = Field(default_factory=dict)
    errors: dict[str, dict[str, object]] = Field(default_factory=dict)


class HardwareSeed(BaseModel):
    capacity: int = Field(ge=0)
    checked_out: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "HardwareSeed":
        if self.checked_out > self.capacity:
            raise ValueError("checked_out cannot exceed capacity")
        return self
