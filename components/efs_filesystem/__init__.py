"""EFS file system component."""

from .builder import EfsFilesystemConfigBuilder, EFS_FILESYSTEM_CONFIG_SCHEMA
from .component import EfsFilesystemComponent
from .creator import EfsFilesystemCreator

__all__ = [
    "EfsFilesystemConfigBuilder",
    "EFS_FILESYSTEM_CONFIG_SCHEMA",
    "EfsFilesystemComponent",
    "EfsFilesystemCreator",
]
