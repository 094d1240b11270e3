"""Result types returned across the availability engine's public boundary."""

from typing import Literal, Union

from pydantic import BaseModel


class TimeSlot(BaseModel):
    time: str
    datetime: str
    available: bool


class SlotsFound(BaseModel):
    success: Literal[True] = True
    data: list[TimeSlot]


class SlotsError(BaseModel):
    success: Literal[False] = False
    error: str


SlotsResult = Union[SlotsFound, SlotsError]


class SlotValidation(BaseModel):
    success: bool = True
    available: bool
    reason: str | None = None

    @classmethod
    def accepted(cls) -> 'SlotValidation':
        return cls(success=True, available=True)

    @classmethod
    def rejected(cls, reason: str) -> 'SlotValidation':
        return cls(success=True, available=False, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> 'SlotValidation':
        return cls(success=False, available=False, reason=reason)
