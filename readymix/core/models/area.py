"""
Project areas and the structures they own.

A structure has no lifecycle of its own: it is created and destroyed
only through its owning area, and the area is the unit observers see.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from readymix.core.models.common import clamp_progress, utc_now


class StructureType(StrEnum):
    """Kinds of structure poured on site."""

    FOUNDATION = "Foundation"
    STRUCTURAL = "Structural"
    PAVING = "Paving"
    GENERAL = "General"


class Structure(BaseModel):
    """A pour target inside a project area."""

    id: str
    name: str
    type: StructureType = StructureType.GENERAL
    recommended_grade: str = ""
    last_updated: datetime = Field(default_factory=utc_now)
    updated_by: str = ""


class ProjectArea(BaseModel):
    """A zone of the construction project with its progress."""

    id: str
    name: str
    progress: int = 0
    structures: list[Structure] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)
    updated_by: str = ""

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> int:
        return clamp_progress(value)

    def get_structure(self, structure_id: str) -> Structure | None:
        """Look up a structure by id."""
        for structure in self.structures:
            if structure.id == structure_id:
                return structure
        return None

    def find_structure(self, name: str) -> Structure | None:
        """Look up a structure by display name."""
        for structure in self.structures:
            if structure.name == name:
                return structure
        return None
