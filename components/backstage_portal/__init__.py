"""Backstage developer portal component."""

from .builder import BackstagePortalConfigBuilder, BACKSTAGE_PORTAL_CONFIG_SCHEMA
from .component import BackstagePortalComponent
from .creator import BackstagePortalCreator

__all__ = [
    "BackstagePortalConfigBuilder",
    "BACKSTAGE_PORTAL_CONFIG_SCHEMA",
    "BackstagePortalComponent",
    "BackstagePortalCreator",
]
