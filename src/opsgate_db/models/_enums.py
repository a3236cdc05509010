"""Helpers for persisting string enums portably."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Enum as SAEnum


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def string_enum(enum_cls: type[Enum], *, name: str, length: int = 40) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=length,
        values_callable=_enum_values,
    )


__all__ = ["string_enum"]
