"""Tests for the blueprint document schema.

Covers:
- Wire round trip (extra keys and camelCase aliases preserved)
- Tagged union: each section type validates its own content
- Unique section ids
- Section content replacement
"""

import pytest

from sitesmith.errors import BlueprintValidationError
from sitesmith.schemas.blueprint import Blueprint, CinematicVideoSection, HeroSection, OpenSection


def _document(**overrides):
    doc = {
        "id": "site_abc",
        "name": "Nile Dental",
        "description": "Family dentistry",
        "theme": {
            "primary": "#0EA5E9",
            "secondary": "#A855F7",
            "fontFamily": "Inter, sans-serif",
            "mode": "light",
            "backgroundColor": "#FFFFFF",
        },
        "layout": [
            {
                "id": "hero-1",
                "type": "hero",
                "content": {"headline": "Smile", "subheadline": "Gentle care", "badge": "New"},
                "animation": "fade-in",
            },
            {
                "id": "video-1",
                "type": "CINEMATIC_VIDEO",
                "content": {"videoUrl": "https://cdn.example/clip.mp4", "prompt": "drone shot"},
            },
            {"id": "faq-1", "type": "faq", "content": {"questions": [{"q": "Open?", "a": "Yes"}]}},
        ],
        "footer": {"copyright": "© Nile Dental", "links": []},
        "metadata": {"niche": "dentist"},
        "ai_insight": "Trust signals up top.",
    }
    doc.update(overrides)
    return doc


class TestWireRoundTrip:

    def test_round_trip_is_identity(self):
        blueprint = Blueprint.from_wire(_document())
        assert Blueprint.from_wire(blueprint.to_wire()) == blueprint

    def test_extra_top_level_keys_survive(self):
        wire = Blueprint.from_wire(_document()).to_wire()
        assert wire["ai_insight"] == "Trust signals up top."

    def test_aliases_written_back_in_camel_case(self):
        wire = Blueprint.from_wire(_document()).to_wire()
        assert wire["theme"]["fontFamily"] == "Inter, sans-serif"
        assert wire["theme"]["backgroundColor"] == "#FFFFFF"
        assert wire["layout"][1]["content"]["videoUrl"] == "https://cdn.example/clip.mp4"

    def test_extra_content_keys_survive(self):
        wire = Blueprint.from_wire(_document()).to_wire()
        assert wire["layout"][0]["content"]["badge"] == "New"

    def test_explicit_nulls_survive(self):
        doc = _document()
        doc["layout"][0]["content"]["badge"] = None
        doc["theme"]["accent"] = None
        doc["ai_insight"] = None
        blueprint = Blueprint.from_wire(doc)

        wire = blueprint.to_wire()

        assert wire["layout"][0]["content"]["badge"] is None
        assert "accent" in wire["theme"] and wire["theme"]["accent"] is None
        assert "ai_insight" in wire
        assert Blueprint.from_wire(wire) == blueprint

    def test_unset_optionals_stay_off_the_wire(self):
        wire = Blueprint.from_wire(_document()).to_wire()
        assert "cta" not in wire["layout"][0]["content"]

    def test_layout_order_preserved(self):
        blueprint = Blueprint.from_wire(_document())
        assert [s.id for s in blueprint.layout] == ["hero-1", "video-1", "faq-1"]


class TestTaggedSections:

    def test_sections_parse_to_their_variant(self):
        blueprint = Blueprint.from_wire(_document())
        assert isinstance(blueprint.layout[0], HeroSection)
        assert isinstance(blueprint.layout[1], CinematicVideoSection)
        assert isinstance(blueprint.layout[2], OpenSection)

    def test_hero_without_headline_rejected(self):
        doc = _document(layout=[{"id": "h", "type": "hero", "content": {"subheadline": "x"}}])
        with pytest.raises(BlueprintValidationError) as exc:
            Blueprint.from_wire(doc)
        assert exc.value.details["errors"]

    def test_video_without_url_rejected(self):
        doc = _document(layout=[{"id": "v", "type": "CINEMATIC_VIDEO", "content": {}}])
        with pytest.raises(BlueprintValidationError):
            Blueprint.from_wire(doc)

    def test_unknown_section_type_rejected(self):
        doc = _document(layout=[{"id": "m", "type": "marquee", "content": {}}])
        with pytest.raises(BlueprintValidationError):
            Blueprint.from_wire(doc)

    def test_hero_prime_is_a_hero(self):
        doc = _document(layout=[{"id": "h", "type": "HERO_PRIME", "content": {"headline": "Hi"}}])
        blueprint = Blueprint.from_wire(doc)
        assert blueprint.first_hero_index() == 0

    def test_sections_are_immutable(self):
        blueprint = Blueprint.from_wire(_document())
        with pytest.raises(Exception):
            blueprint.layout[0].id = "changed"


class TestValidation:

    def test_duplicate_section_ids_rejected(self):
        section = {"id": "dup", "type": "faq", "content": {}}
        with pytest.raises(BlueprintValidationError):
            Blueprint.from_wire(_document(layout=[section, dict(section)]))

    def test_non_object_rejected(self):
        with pytest.raises(BlueprintValidationError):
            Blueprint.from_wire(["not", "a", "blueprint"])

    def test_bad_theme_mode_rejected(self):
        doc = _document()
        doc["theme"]["mode"] = "neon"
        with pytest.raises(BlueprintValidationError):
            Blueprint.from_wire(doc)


class TestSectionEdit:

    def test_replaces_whole_content_map(self):
        blueprint = Blueprint.from_wire(_document())
        edited = blueprint.with_section_content("hero-1", {"headline": "Brighter smiles"})

        hero = edited.find_section("hero-1")
        assert hero.content.headline == "Brighter smiles"
        assert hero.content.subheadline is None
        # original untouched
        assert blueprint.find_section("hero-1").content.headline == "Smile"

    def test_edit_is_validated_against_section_type(self):
        blueprint = Blueprint.from_wire(_document())
        with pytest.raises(BlueprintValidationError):
            blueprint.with_section_content("hero-1", {"title": "no headline"})

    def test_unknown_section_id(self):
        blueprint = Blueprint.from_wire(_document())
        with pytest.raises(BlueprintValidationError):
            blueprint.with_section_content("missing", {"headline": "x"})
