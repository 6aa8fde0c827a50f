"""Blueprint document schema.

A blueprint is the structured JSON document that fully describes one site:
theme, navigation, an ordered list of typed sections, footer and metadata.
It is stored verbatim on the Site row and is the whole rendering contract.

Sections form a tagged union keyed by ``type``. Each variant validates the
keys its renderer depends on and keeps any other keys untouched, so the
document survives a wire round trip unchanged.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from sitesmith.errors import BlueprintValidationError

HERO_TYPES = frozenset({"hero", "HERO_PRIME"})
FEATURE_TYPES = frozenset({"features", "FEATURE_GRID"})


class _Content(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)


class HeroContent(_Content):
    headline: str
    subheadline: str | None = None
    cta: str | None = None
    image: str | None = None
    anchor: str | None = None


class FeaturesContent(_Content):
    title: str | None = None
    features: Sequence[str] | None = None
    items: Sequence[Any] | None = None


class CinematicVideoContent(_Content):
    video_url: str = Field(alias="videoUrl")
    prompt: str | None = None


class GalleryContent(_Content):
    images: Sequence[str] = Field(default_factory=list)


class TestimonialsContent(_Content):
    title: str | None = None
    reviews: Sequence[Any] = Field(default_factory=list)


class CtaContent(_Content):
    headline: str
    subheadline: str | None = None


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    styles: dict[str, Any] | None = None
    animation: str | None = None


class HeroSection(_Section):
    type: Literal["hero", "HERO_PRIME"]
    content: HeroContent


class FeaturesSection(_Section):
    type: Literal["features", "FEATURE_GRID"]
    content: FeaturesContent


class CinematicVideoSection(_Section):
    type: Literal["CINEMATIC_VIDEO"]
    content: CinematicVideoContent


class GallerySection(_Section):
    type: Literal["gallery"]
    content: GalleryContent


class TestimonialsSection(_Section):
    type: Literal["testimonials"]
    content: TestimonialsContent


class CtaSection(_Section):
    type: Literal["cta"]
    content: CtaContent


class OpenSection(_Section):
    """Sections whose renderer accepts free-form content."""

    type: Literal["pricing", "services", "faq", "contact", "custom"]
    content: dict[str, Any] = Field(default_factory=dict)


Section = Annotated[
    Union[
        HeroSection,
        FeaturesSection,
        CinematicVideoSection,
        GallerySection,
        TestimonialsSection,
        CtaSection,
        OpenSection,
    ],
    Field(discriminator="type"),
]


class Theme(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    primary: str
    secondary: str
    accent: str | None = None
    font_family: str = Field(alias="fontFamily")
    mode: Literal["light", "dark", "quantum"]
    background_color: str | None = Field(default=None, alias="backgroundColor")
    text_color: str | None = Field(default=None, alias="textColor")


class NavLink(BaseModel):
    label: str
    href: str


class Navigation(BaseModel):
    model_config = ConfigDict(extra="allow")

    logo: str | None = None
    links: Sequence[NavLink] = Field(default_factory=list)
    transparent: bool | None = None


class Footer(BaseModel):
    model_config = ConfigDict(extra="allow")

    copyright: str
    links: Sequence[NavLink] = Field(default_factory=list)
    social: dict[str, Any] | None = None


class Blueprint(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str
    description: str = ""
    navigation: Navigation | None = None
    theme: Theme
    layout: list[Section] = Field(default_factory=list)
    footer: Footer | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _section_ids_unique(self) -> "Blueprint":
        seen: set[str] = set()
        for section in self.layout:
            if section.id in seen:
                raise ValueError(f"duplicate section id '{section.id}'")
            seen.add(section.id)
        return self

    @classmethod
    def from_wire(cls, data: Any) -> "Blueprint":
        """Parse a wire document, raising BlueprintValidationError when malformed."""
        if not isinstance(data, dict):
            raise BlueprintValidationError("Blueprint must be a JSON object")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            errors = exc.errors(
                include_url=False, include_context=False, include_input=False
            )
            raise BlueprintValidationError(
                "Blueprint failed schema validation",
                details={"errors": errors},
            ) from exc

    def to_wire(self) -> dict[str, Any]:
        # unset optionals stay off the wire, an explicit null is kept
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def find_section(self, section_id: str):
        for section in self.layout:
            if section.id == section_id:
                return section
        return None

    def first_hero_index(self) -> int | None:
        for index, section in enumerate(self.layout):
            if section.type in HERO_TYPES:
                return index
        return None

    def with_section_content(self, section_id: str, content: dict[str, Any]) -> "Blueprint":
        """Return a copy where one section's content map is replaced wholesale.

        The result is re-validated so the new content must fit the
        section's type.
        """
        if self.find_section(section_id) is None:
            raise BlueprintValidationError(
                f"Section '{section_id}' not found in blueprint",
                details={"section_id": section_id},
            )
        wire = self.to_wire()
        for section in wire["layout"]:
            if section["id"] == section_id:
                section["content"] = content
        return Blueprint.from_wire(wire)


__all__ = [
    "Blueprint",
    "CinematicVideoSection",
    "CtaSection",
    "FEATURE_TYPES",
    "FeaturesSection",
    "Footer",
    "GallerySection",
    "HERO_TYPES",
    "HeroSection",
    "NavLink",
    "Navigation",
    "OpenSection",
    "Section",
    "TestimonialsSection",
    "Theme",
]
