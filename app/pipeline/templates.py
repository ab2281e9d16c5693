"""
Typed instruction templates with named slots.

A template is plain text with ``{slot}`` placeholders (``{{`` / ``}}``
for literal braces).  Slots are parsed once, when the template is
built, so a pipeline variant can check every reference up front and
rendering can never silently leave a placeholder behind.

Slot kinds:
  - base slots filled per request: question, evidence, memory, findings
  - stage slots: the key of an earlier stage, filled with its frozen text
"""

from __future__ import annotations

import string
from typing import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

BASE_SLOTS: frozenset[str] = frozenset({"question", "evidence", "memory", "findings"})

_FORMATTER = string.Formatter()


class TemplateError(ValueError):
    """Raised for malformed templates, bad slot references, or missing values."""


def parse_slots(text: str) -> tuple[str, ...]:
    """Return slot names in order of first appearance."""
    slots: list[str] = []
    try:
        parsed = list(_FORMATTER.parse(text))
    except ValueError as exc:
        raise TemplateError(f"Malformed template: {exc}") from exc

    for _literal, field, spec, conversion in parsed:
        if field is None:
            continue
        if not field.isidentifier() or spec or conversion:
            raise TemplateError(f"Unsupported placeholder '{{{field}}}'")
        if field not in slots:
            slots.append(field)
    return tuple(slots)


class StageTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str

    @field_validator("text")
    @classmethod
    def _validate_text(cls, v: str) -> str:
        parse_slots(v)
        return v

    @property
    def slots(self) -> tuple[str, ...]:
        return parse_slots(self.text)

    def render(self, values: Mapping[str, str]) -> str:
        missing = [s for s in self.slots if s not in values]
        if missing:
            raise TemplateError(f"No value for slot(s): {', '.join(missing)}")
        return self.text.format_map({s: values[s] for s in self.slots})


def template(text: str) -> StageTemplate:
    return StageTemplate(text=text)
