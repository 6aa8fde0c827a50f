"""Base template catalog.

Each base template is a complete blueprint the composer starts from. Section
ids are derived from the template id so the same template always yields the
same layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from sitesmith.errors import TemplateNotFound
from sitesmith.schemas.blueprint import Blueprint


@dataclass(frozen=True)
class BaseTemplate:
    id: str
    name: str
    category: str
    description: str
    primary_color: str
    sections: Sequence[str]

    def build_blueprint(self) -> Blueprint:
        layout = []
        for index, section_type in enumerate(self.sections):
            layout.append({
                "id": f"{self.id}-{section_type.lower()}-{index}",
                "type": section_type,
                "content": _default_content(self.name, section_type),
                "styles": {},
                "animation": "fade-in",
            })
        return Blueprint.from_wire({
            "id": self.id,
            "name": self.name,
            "description": f"A proven layout for {self.name}.",
            "theme": {
                "primary": self.primary_color,
                "secondary": "#A855F7",
                "accent": "#A855F7",
                "fontFamily": "Inter, sans-serif",
                "mode": "quantum",
            },
            "navigation": {"logo": self.name, "links": [], "transparent": False},
            "layout": layout,
            "footer": {"copyright": f"{self.name}. All rights reserved.", "links": []},
            "metadata": {"base_template": self.id, "category": self.category},
        })


def _default_content(name: str, section_type: str) -> dict:
    content = {
        "headline": f"{name} Architecture",
        "subheadline": "Optimized for conversion and structural clarity.",
    }
    if section_type in ("features", "FEATURE_GRID"):
        content["features"] = ["Fast Setup", "Clear Messaging", "Mobile Ready"]
    elif section_type == "gallery":
        content["images"] = []
    elif section_type == "testimonials":
        content["reviews"] = []
    elif section_type == "pricing":
        content["plans"] = []
    return content


DEFAULT_TEMPLATES: tuple[BaseTemplate, ...] = (
    BaseTemplate("t1-quantum", "Quantum Tech", "tech-agency",
                 "Dark mode, neon accents, high-frequency layout.",
                 "#00F2FF", ("hero", "features", "pricing")),
    BaseTemplate("t3-ai-agent", "Neural Agency", "tech-agency",
                 "AI-focused agency with interactive elements.",
                 "#8B5CF6", ("hero", "features", "cta")),
    BaseTemplate("e1-vault", "The Vault", "luxury-ecommerce",
                 "Gold and black, high-resolution product focus.",
                 "#D4AF37", ("hero", "gallery", "testimonials")),
    BaseTemplate("s1-consult", "Global Advisor", "professional-services",
                 "Trust-first consulting layout.",
                 "#1E40AF", ("hero", "features", "testimonials")),
    BaseTemplate("s2-health", "Care Practice", "professional-services",
                 "Clinic and practice layout with booking focus.",
                 "#0EA5E9", ("hero", "features", "testimonials", "cta")),
    BaseTemplate("f1-cinematic", "Chef's Table", "food-hospitality",
                 "Cinematic restaurant showcase.",
                 "#7C2D12", ("hero", "gallery", "features")),
    BaseTemplate("m1-clinic", "Apex Medical", "health-medicine",
                 "Modern medical clinic.",
                 "#2563EB", ("HERO_PRIME", "FEATURE_GRID", "cta")),
    BaseTemplate("r1-estate", "Boreal Estates", "real-estate",
                 "Property listings with immersive media.",
                 "#0F766E", ("hero", "gallery", "features", "cta")),
)


class TemplateCatalog:
    def __init__(self, templates: Iterable[BaseTemplate] = DEFAULT_TEMPLATES) -> None:
        self._templates: Mapping[str, BaseTemplate] = {t.id: t for t in templates}

    def get(self, template_id: str) -> BaseTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)
        return template

    def blueprint_for(self, template_id: str) -> Blueprint:
        return self.get(template_id).build_blueprint()

    def list(self) -> list[BaseTemplate]:
        return list(self._templates.values())


__all__ = ["BaseTemplate", "DEFAULT_TEMPLATES", "TemplateCatalog"]
