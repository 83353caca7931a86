import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from yaml.loader import SafeLoader

from components.common.exceptions import ManifestError

logger = logging.getLogger(__name__)

# Environment variable overriding the platform configuration directory
CONFIG_DIR_ENV_VAR = "PLATFORM_CONFIG_DIR"

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

PLATFORM_FILE = "platform.yml"


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """
    Load a YAML mapping from disk.

    Raises:
        ManifestError: If the file is unreadable, malformed or not a mapping
    """
    try:
        with open(path, encoding='utf-8') as f:
            data = yaml.load(f, Loader=SafeLoader)
    except OSError as e:
        raise ManifestError(f"Unable to read {path}: {e}", path=str(path))
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {path}: {e}", path=str(path))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ManifestError(
            f"Expected a mapping at the top of {path}, got {type(data).__name__}",
            path=str(path)
        )
    return data


class PlatformConfig:
    """
    Platform configuration files backing layers 2-4 of every ConfigBuilder.

    ``platform.yml`` holds ``defaults.<component-type>`` (platform defaults) and
    ``environments.<env>.<component-type>`` (environment defaults).
    ``<framework>.yml`` holds ``defaults.<component-type>`` for each
    compliance framework.
    """

    def __init__(self, config_dir: Optional[str] = None) -> None:
        self.config_dir = Path(
            config_dir or os.environ.get(CONFIG_DIR_ENV_VAR) or DEFAULT_CONFIG_DIR
        )
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load(self, file_name: str) -> Dict[str, Any]:
        if file_name not in self._cache:
            path = self.config_dir / file_name
            if not path.exists():
                logger.warning(f"Platform configuration file not found: {path}; using empty defaults")
                self._cache[file_name] = {}
            else:
                self._cache[file_name] = load_yaml_file(path)
                logger.debug(f"Loaded platform configuration from {path}")
        return self._cache[file_name]

    @property
    def data(self) -> Dict[str, Any]:
        return self.load(PLATFORM_FILE)

    def get(self, key, default=None):
        return copy.deepcopy(self.data.get(key, default))

    def get_component_defaults(self, component_type: str) -> Dict[str, Any]:
        return copy.deepcopy((self.data.get('defaults') or {}).get(component_type) or {})

    def get_environment_defaults(self, environment: str, component_type: str) -> Dict[str, Any]:
        environments = self.data.get('environments') or {}
        return copy.deepcopy((environments.get(environment) or {}).get(component_type) or {})

    def get_compliance_defaults(self, framework, component_type: str) -> Dict[str, Any]:
        framework_name = getattr(framework, 'value', framework)
        data = self.load(f"{framework_name}.yml")
        declared = data.get('framework')
        if declared and declared != framework_name:
            raise ManifestError(
                f"{framework_name}.yml declares framework '{declared}'",
                path=str(self.config_dir / f"{framework_name}.yml")
            )
        return copy.deepcopy((data.get('defaults') or {}).get(component_type) or {})

    def clear_cache(self) -> None:
        self._cache.clear()
