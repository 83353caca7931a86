"""Glue job component."""

from .builder import GlueJobConfigBuilder, GLUE_JOB_CONFIG_SCHEMA
from .component import GlueJobComponent
from .creator import GlueJobCreator

__all__ = [
    "GlueJobConfigBuilder",
    "GLUE_JOB_CONFIG_SCHEMA",
    "GlueJobComponent",
    "GlueJobCreator",
]
