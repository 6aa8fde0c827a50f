from sitesmith.schemas.blueprint import Blueprint, FEATURE_TYPES, HERO_TYPES  # noqa: F401
from sitesmith.schemas.intent import UserIntent  # noqa: F401
