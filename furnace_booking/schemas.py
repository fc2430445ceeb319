"""Typed request schemas validated at the store boundary."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .booking import format_timestamp, parse_timestamp
from .errors import INVALID_RANGE_MESSAGE, REQUIRED_FIELDS_MESSAGE, BookingValidationError


class BookingAction(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class NewBooking(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )

    start_date_time: datetime
    end_date_time: datetime
    name: str
    sample: str
    gas: str
    notes: str | None = None

    @field_validator("start_date_time", "end_date_time", mode="before")
    @classmethod
    def _local_clock(cls, value: Any) -> datetime:
        return parse_timestamp(value).replace(microsecond=0)

    @field_validator("name", "sample", "gas")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value:
            raise ValueError(REQUIRED_FIELDS_MESSAGE)
        return value

    @field_validator("notes")
    @classmethod
    def _blank_notes(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def _end_after_start(self) -> "NewBooking":
        if self.end_date_time <= self.start_date_time:
            raise ValueError(INVALID_RANGE_MESSAGE)
        return self

    @property
    def start(self) -> datetime:
        return self.start_date_time

    @property
    def end(self) -> datetime:
        return self.end_date_time

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "startDateTime": format_timestamp(self.start_date_time),
            "endDateTime": format_timestamp(self.end_date_time),
            "name": self.name,
            "sample": self.sample,
            "gas": self.gas,
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload


class BookingUpdate(NewBooking):
    id: str

    @field_validator("id")
    @classmethod
    def _required_id(cls, value: str) -> str:
        if not value:
            raise ValueError("Booking id is required.")
        return value

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, **super().to_payload()}


def parse_new_booking(data: NewBooking | Mapping[str, Any]) -> NewBooking:
    return _parse(NewBooking, data)


def parse_booking_update(data: BookingUpdate | Mapping[str, Any]) -> BookingUpdate:
    return _parse(BookingUpdate, data)


def parse_action(value: Any) -> BookingAction:
    try:
        return BookingAction(str(value or "").strip().upper())
    except ValueError as error:
        raise BookingValidationError(f"Unsupported action: {value!r}") from error


def _parse(model: type[NewBooking], data: Any) -> Any:
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise BookingValidationError("Booking payload must be a mapping.")
    try:
        return model.model_validate(dict(data))
    except ValidationError as error:
        raise BookingValidationError(_describe_validation_error(error)) from error


def _describe_validation_error(error: ValidationError) -> str:
    messages: list[str] = []
    for item in error.errors():
        if item["type"] == "missing":
            message = REQUIRED_FIELDS_MESSAGE
        else:
            message = str(item["msg"]).removeprefix("Value error, ")
        if message not in messages:
            messages.append(message)
    return " ".join(messages)
