"""Blueprint composer: user intent + base template -> concrete blueprint.

Flow:
1. Resolve the base template (unknown id -> TemplateNotFound, fatal).
2. Ask the generative service for a finished blueprint. Any failure there
   (unreachable, non-2xx, garbage, schema-invalid) is logged and recovered
   by falling back to the heuristic synthesizer.
3. Heuristic path: deep-merge synthesized copy into the template layout.
   Hero variants get headline/subheadline, feature variants get the feature
   list, every other section is copied unchanged.
4. An injection section from the synthesizer goes right after the first
   hero. A template without a hero cannot take one -> CompositionError.
5. Every blueprint leaves with a fresh id and metadata.generated_at.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from sitesmith.errors import BlueprintValidationError, CompositionError, GenerationError
from sitesmith.schemas.blueprint import FEATURE_TYPES, HERO_TYPES, Blueprint
from sitesmith.schemas.intent import UserIntent
from sitesmith.services import generator_client
from sitesmith.services.synthesizer import SynthesizedCopy, map_theme, synthesize
from sitesmith.services.template_catalog import TemplateCatalog

logger = logging.getLogger(__name__)

ENGINE_VERSION = "sitesmith-heuristic-1"

NAV_LABELS = {
    "en": (("Home", "#home"), ("Services", "#services"), ("Pricing", "#pricing"), ("Contact", "#contact")),
    "ar": (("الرئيسية", "#home"), ("الخدمات", "#services"), ("الأسعار", "#pricing"), ("تواصل", "#contact")),
}

FOOTER_LABELS = {
    "en": (("Privacy", "/privacy"), ("Terms", "/terms")),
    "ar": (("الخصوصية", "/privacy"), ("الشروط", "/terms")),
}


def new_site_id() -> str:
    return f"site_{uuid.uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlueprintComposer:
    def __init__(
        self,
        *,
        catalog: TemplateCatalog | None = None,
        synthesizer: Callable[[UserIntent], SynthesizedCopy] = synthesize,
        generator: Callable[[UserIntent], dict[str, Any]] | None = None,
        id_factory: Callable[[], str] = new_site_id,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._catalog = catalog or TemplateCatalog()
        self._synthesizer = synthesizer
        self._generator = generator
        self._id_factory = id_factory
        self._clock = clock

    def compose(self, intent: UserIntent, base_template_id: str) -> Blueprint:
        template = self._catalog.get(base_template_id)

        generated = self._try_generative(intent)
        if generated is not None:
            return self._stamp(generated, intent, engine="generative")

        specialized = self._synthesizer(intent)
        logger.info(
            f"Heuristic synthesis for {intent.business_name!r}: "
            f"vector={specialized.vector} template={base_template_id}"
        )
        blueprint = self._merge(template.build_blueprint(), specialized, intent)
        return self._stamp(blueprint, intent, engine=ENGINE_VERSION)

    # ── Generative path ──

    def _try_generative(self, intent: UserIntent) -> Blueprint | None:
        generator = self._generator
        if generator is None:
            if not generator_client.is_configured():
                return None
            generator = generator_client.generate_blueprint

        try:
            document = generator(intent)
            return Blueprint.from_wire(document)
        except GenerationError as e:
            logger.warning(f"Generative synthesis failed, using heuristic fallback: {e}")
        except BlueprintValidationError as e:
            logger.warning(
                f"Generative blueprint rejected by schema, using heuristic fallback: "
                f"{e.details.get('errors')}"
            )
        return None

    # ── Heuristic path ──

    def _merge(self, base: Blueprint, specialized: SynthesizedCopy, intent: UserIntent) -> Blueprint:
        wire = base.to_wire()
        locale = "ar" if intent.is_arabic else "en"

        layout = [self._merge_section(section, specialized) for section in wire["layout"]]

        if specialized.injection_section is not None:
            hero_index = base.first_hero_index()
            if hero_index is None:
                raise CompositionError(
                    f"Template '{base.id}' has no hero section to anchor the "
                    f"'{specialized.injection_section.type}' section",
                    details={"template_id": base.id, "vector": specialized.vector},
                )
            layout.insert(hero_index + 1, {
                "id": f"inject_{uuid.uuid4().hex[:12]}",
                "type": specialized.injection_section.type,
                "content": copy.deepcopy(dict(specialized.injection_section.content)),
                "styles": {},
                "animation": "fade-in",
            })

        wire["layout"] = layout
        wire["name"] = intent.business_name
        wire["description"] = intent.vision
        wire["theme"] = {**wire["theme"], **map_theme(intent.niche)}
        wire["navigation"] = {
            **wire.get("navigation", {}),
            "logo": intent.business_name,
            "links": [{"label": label, "href": href} for label, href in NAV_LABELS[locale]],
        }
        wire["footer"] = {
            **wire.get("footer", {}),
            "copyright": f"© {self._clock().year} {intent.business_name}. All rights reserved.",
            "links": [{"label": label, "href": href} for label, href in FOOTER_LABELS[locale]],
        }
        wire["metadata"] = {
            **wire.get("metadata", {}),
            "niche": intent.niche,
            "locale": intent.locale,
            "seo": {
                "title": f"{intent.business_name} | {intent.niche}",
                "description": intent.vision[:160]
                or f"{intent.niche} services by {intent.business_name}.",
                "keywords": [intent.niche, intent.business_name],
            },
        }
        return Blueprint.from_wire(wire)

    @staticmethod
    def _merge_section(section: dict[str, Any], specialized: SynthesizedCopy) -> dict[str, Any]:
        merged = copy.deepcopy(section)
        if section["type"] in HERO_TYPES:
            merged["content"]["headline"] = specialized.headline
            merged["content"]["subheadline"] = specialized.subheadline
        elif section["type"] in FEATURE_TYPES:
            merged["content"]["features"] = list(specialized.features)
        return merged

    def _stamp(self, blueprint: Blueprint, intent: UserIntent, *, engine: str) -> Blueprint:
        metadata = {
            **blueprint.metadata,
            "generated_at": self._clock().isoformat(),
            "engine_version": engine,
        }
        metadata.setdefault("niche", intent.niche)
        return blueprint.model_copy(update={"id": self._id_factory(), "metadata": metadata})


__all__ = ["BlueprintComposer", "ENGINE_VERSION", "new_site_id"]
