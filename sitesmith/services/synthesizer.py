"""Heuristic synthesizer: copy fragments without the generative service.

Classifies the user's niche and vision against an ordered list of keyword
vectors (health, technology, real estate, catch-all) and returns localized
headline / subheadline / feature-label fragments. The first vector that
matches wins; matching is case-insensitive substring search.

Everything here is a pure function of the intent: the same input always
yields byte-identical fragments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from sitesmith.schemas.intent import UserIntent


@dataclass(frozen=True)
class InjectionSection:
    """A specialised section the composer inserts right after the hero."""

    type: str
    content: Mapping[str, Any]


@dataclass(frozen=True)
class SynthesizedCopy:
    vector: str
    headline: str
    subheadline: str
    features: tuple[str, ...]
    injection_section: InjectionSection | None = None


@dataclass(frozen=True)
class NicheVector:
    name: str
    niche_keywords: tuple[str, ...] = ()
    vision_keywords: tuple[str, ...] = ()
    build: Callable[[UserIntent], SynthesizedCopy] | None = field(default=None, compare=False)

    def matches(self, niche: str, vision: str) -> bool:
        return any(k in niche for k in self.niche_keywords) or any(
            k in vision for k in self.vision_keywords
        )


def _health(intent: UserIntent) -> SynthesizedCopy:
    biz = intent.business_name
    if intent.is_arabic:
        return SynthesizedCopy(
            vector="health",
            headline=f"رعاية طبية متميزة في {biz}: المريض أولاً",
            subheadline="عيادة مصممة لنتائج أفضل للمرضى وثقة تدوم.",
            features=("مواعيد سريعة", "أطباء متخصصون", "متابعة بعد الزيارة"),
        )
    return SynthesizedCopy(
        vector="health",
        headline=f"Clinical Excellence at {biz}: Patient-First Care",
        subheadline="Healthcare built around better patient outcomes and lasting trust.",
        features=("Fast Appointment Booking", "Specialist Consultations", "Post-Visit Follow-Up"),
    )


def _technology(intent: UserIntent) -> SynthesizedCopy:
    biz = intent.business_name
    if intent.is_arabic:
        return SynthesizedCopy(
            vector="technology",
            headline=f"نبني المستقبل مع {biz}",
            subheadline="منصات ذكية وحلول برمجية تنمو مع أعمالك.",
            features=("تكامل ذكاء اصطناعي", "واجهات برمجية آمنة", "بنية قابلة للتوسع"),
        )
    return SynthesizedCopy(
        vector="technology",
        headline=f"Building the Future with {biz}",
        subheadline="Intelligent platforms and software that scale with your business.",
        features=("AI Integration", "Secure APIs", "Scalable Infrastructure"),
    )


def _real_estate(intent: UserIntent) -> SynthesizedCopy:
    biz = intent.business_name
    injection = InjectionSection(
        type="CINEMATIC_VIDEO",
        content={
            "prompt": f"Modern luxury villa for {biz}",
            "videoUrl": "https://assets.mixkit.co/videos/preview/"
                        "mixkit-modern-architecture-in-a-sunny-day-36314-large.mp4",
        },
    )
    if intent.is_arabic:
        return SynthesizedCopy(
            vector="real_estate",
            headline="عقارات فاخرة. ملكية تدوم.",
            subheadline=f"عقارات سكنية وتجارية مختارة بعناية لعملاء {biz}.",
            features=("مخططات دقيقة", "معاملات آمنة", "جولات افتراضية"),
            injection_section=injection,
        )
    return SynthesizedCopy(
        vector="real_estate",
        headline="Luxury Living. Lasting Ownership.",
        subheadline=f"Hand-picked residential and commercial properties for {biz} clients.",
        features=("Detailed Floor Plans", "Secure Transactions", "Virtual Tours"),
        injection_section=injection,
    )


def _catch_all(intent: UserIntent) -> SynthesizedCopy:
    biz = intent.business_name
    if intent.is_arabic:
        return SynthesizedCopy(
            vector="general",
            headline=f"{biz}: التميز في كل تفصيل",
            subheadline=f"حضور رقمي مصمم للنمو في قطاع {intent.niche}.",
            features=("كفاءة في التنفيذ", "نمو متسارع", "دعم مستمر"),
        )
    return SynthesizedCopy(
        vector="general",
        headline=f"{biz}: Excellence in Every Detail",
        subheadline=f"A digital presence engineered for growth in the {intent.niche} sector.",
        features=("Efficient Delivery", "Accelerated Growth", "Ongoing Support"),
    )


# Order matters: first match wins.
NICHE_VECTORS: tuple[NicheVector, ...] = (
    NicheVector("health", ("health", "doctor"), ("medical",), _health),
    NicheVector("technology", ("tech", "ai"), ("future",), _technology),
    NicheVector("real_estate", ("estate", "property", "house"), (), _real_estate),
)


def classify(intent: UserIntent, vectors=NICHE_VECTORS) -> NicheVector | None:
    niche = intent.niche.lower()
    vision = intent.vision.lower()
    for vector in vectors:
        if vector.matches(niche, vision):
            return vector
    return None


def synthesize(intent: UserIntent, vectors=NICHE_VECTORS) -> SynthesizedCopy:
    """Return localized copy fragments for the first matching niche vector."""
    vector = classify(intent, vectors)
    if vector is None:
        return _catch_all(intent)
    return vector.build(intent)


# Palettes are matched against the niche only, also first-match-wins.
THEME_PALETTES = (
    (("finance", "legal", "law"), {
        "primary": "#1E3A8A",
        "secondary": "#1F2937",
        "backgroundColor": "#0B1220",
        "textColor": "#F8FAFC",
    }),
    (("restaurant", "food", "cafe"), {
        "primary": "#EA580C",
        "secondary": "#F59E0B",
        "backgroundColor": "#0F0A05",
        "textColor": "#FFF7ED",
    }),
    (("tech", "ai", "software"), {
        "primary": "#7C3AED",
        "secondary": "#09090B",
        "backgroundColor": "#050509",
        "textColor": "#E4E4E7",
    }),
)

DEFAULT_PALETTE = {
    "primary": "#3B82F6",
    "secondary": "#1E293B",
    "backgroundColor": "#0B1227",
    "textColor": "#E5E7EB",
}


def map_theme(niche: str) -> dict[str, str]:
    value = niche.lower()
    for keywords, palette in THEME_PALETTES:
        if any(k in value for k in keywords):
            return dict(palette)
    return dict(DEFAULT_PALETTE)


__all__ = [
    "InjectionSection",
    "NICHE_VECTORS",
    "NicheVector",
    "SynthesizedCopy",
    "classify",
    "map_theme",
    "synthesize",
]
