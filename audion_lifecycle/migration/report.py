from __future__ import annotations

from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from audion_lifecycle.errors import MigrationReportError


class MigrationReport(BaseModel):
    """Result of one cover-migration batch, as returned by the storage side.

    Track covers and album covers are counted separately; ``errors`` holds one
    human-readable line per item that could not be moved, in the order they
    were hit.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    total: int = Field(ge=0)
    processed: int = Field(ge=0)
    tracks_migrated: int = Field(default=0, ge=0, validation_alias=AliasChoices("tracks_migrated", "category_a_count"))
    albums_migrated: int = Field(default=0, ge=0, validation_alias=AliasChoices("albums_migrated", "category_b_count"))
    errors: tuple[str, ...] = ()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def clean(self) -> bool:
        return not self.errors

    @classmethod
    def coerce(cls, payload: "MigrationReport | Mapping[str, Any]") -> "MigrationReport":
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, Mapping):
            raise MigrationReportError(f"expected a mapping, got {type(payload).__name__}")
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            raise MigrationReportError(str(exc)) from exc
