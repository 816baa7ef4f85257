from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def is_valid_key(value: str) -> bool:
    """Non-empty and without surrounding whitespace; keys are stored verbatim."""
    return bool(value) and value == value.strip()


def _dedupe(values: List[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class OverrideDocument(BaseModel):
    """
    Wire/storage shape: {"add": [...], "remove": [...]}.
    Both fields are optional; a missing or null field means "empty".
    A key may appear in both lists: remove wins at resolution time.
    """

    model_config = ConfigDict(extra="ignore")

    add: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)

    @field_validator("add", "remove", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("add", "remove")
    @classmethod
    def reject_untrimmed_and_dedupe(cls, v: List[str]) -> List[str]:
        bad = [p for p in v if not is_valid_key(p)]
        if bad:
            raise ValueError(f"permission keys must be non-empty without surrounding whitespace: {bad!r}")
        return _dedupe(v)

    def is_empty(self) -> bool:
        return not self.add and not self.remove


class PermissionsOut(BaseModel):
    permissions: List[str] = Field(default_factory=list)


class OverrideWriteOut(BaseModel):
    ok: bool = True
    permissions: List[str] = Field(default_factory=list)


class PermissionDescriptionOut(BaseModel):
    key: str
    label: str
    group: str
    description: Optional[str] = None


class CatalogOut(BaseModel):
    permissions: List[PermissionDescriptionOut]
    roles: Dict[str, List[str]]
