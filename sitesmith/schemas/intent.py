from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserIntent(BaseModel):
    """What the user told us about their business."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    business_name: str = Field(alias="businessName", min_length=2)
    niche: str = Field(min_length=2)
    vision: str = Field(default="", validation_alias=AliasChoices("vision", "freeformVision"))
    locale: str = Field(default="en", min_length=2, max_length=5)

    @property
    def is_arabic(self) -> bool:
        return self.locale == "ar"

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


__all__ = ["UserIntent"]
