"""
Logging setup for synthesis runs.

``LOG_LEVEL`` sets one level for every module. Without it, a module's level
comes from ``LOG_LEVEL_<DOTTED_NAME>`` for the module or its closest parent
package (``LOG_LEVEL_COMPONENTS_COMMON`` covers every common module), then
from ``MODULE_LOG_LEVELS``, then INFO.
"""

import logging
import os
import sys
from typing import Any, Iterator, Optional

DEFAULT_LOG_LEVEL = "INFO"
DEBUG_LOG_LEVEL = "DEBUG"

LOG_LEVEL_ENV_VAR = "LOG_LEVEL"

# Set by app.py once the manifest names the service
SERVICE_NAME_ENV_VAR = "PLATFORM_SERVICE_NAME"
DEFAULT_SERVICE_NAME = "platform"

DEFAULT_FORMAT = '%(asctime)s - [{service}] - %(name)s - %(levelname)s - %(message)s'
PLAIN_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

MODULE_LOG_LEVELS = {
    "components.common.config_builder": "INFO",
    "components.common.binding": "INFO",
    "helper.config": "INFO",
}


class ServiceNameFormatter(logging.Formatter):
    """
    Formatter that prefixes every record with the service being synthesized.

    PLATFORM_SERVICE_NAME is re-read per record because the formatter is
    installed before the manifest is loaded.
    """

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        self._fixed_format = fmt is not None
        self.service_name = os.environ.get(SERVICE_NAME_ENV_VAR, DEFAULT_SERVICE_NAME)
        super().__init__(fmt or DEFAULT_FORMAT.format(service=self.service_name), datefmt)

    def format(self, record: logging.LogRecord) -> str:
        service_name = os.environ.get(SERVICE_NAME_ENV_VAR, DEFAULT_SERVICE_NAME)
        if service_name != self.service_name and not self._fixed_format:
            self._style._fmt = DEFAULT_FORMAT.format(service=service_name)
        self.service_name = service_name
        return super().format(record)


def _module_prefixes(module_name: str) -> Iterator[str]:
    parts = module_name.split(".")
    for end in range(len(parts), 0, -1):
        yield ".".join(parts[:end])


def _env_var_for(module_name: str) -> str:
    return f"{LOG_LEVEL_ENV_VAR}_{module_name.replace('.', '_').upper()}"


def get_log_level(module_name: Optional[str] = None) -> str:
    """Resolve the level name (DEBUG, INFO, ...) for ``module_name``."""
    forced = os.environ.get(LOG_LEVEL_ENV_VAR)
    if forced:
        return forced.upper()
    if not module_name:
        return DEFAULT_LOG_LEVEL

    for prefix in _module_prefixes(module_name):
        from_env = os.environ.get(_env_var_for(prefix))
        if from_env:
            return from_env.upper()
    for prefix in _module_prefixes(module_name):
        if prefix in MODULE_LOG_LEVELS:
            return MODULE_LOG_LEVELS[prefix].upper()
    return DEFAULT_LOG_LEVEL


def setup_logging(
    level: Optional[str] = None,
    module_name: Optional[str] = None,
    format_string: Optional[str] = None,
    use_service_formatter: bool = True
) -> logging.Logger:
    """
    Install a stderr handler on the root logger (once) and return a module logger.

    Args:
        level: Level name; resolved with ``get_log_level`` when omitted
        module_name: Logger name, also used for the level lookup
        format_string: Format passed to the formatter
        use_service_formatter: Prefix records with the service name

    Returns:
        The logger for ``module_name``
    """
    level = (level or get_log_level(module_name)).upper()
    numeric_level = getattr(logging, level, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        # stdout carries the cloud assembly when cdk runs the app
        handler = logging.StreamHandler(sys.stderr)
        if use_service_formatter:
            handler.setFormatter(ServiceNameFormatter(format_string))
        else:
            handler.setFormatter(logging.Formatter(format_string or PLAIN_FORMAT))
        root.addHandler(handler)
        root.setLevel(numeric_level)

    logger = logging.getLogger(module_name or __name__)
    logger.setLevel(numeric_level)
    return logger


def configure_debug_logging() -> None:
    """Switch the root logger and every existing logger to DEBUG."""
    os.environ[LOG_LEVEL_ENV_VAR] = DEBUG_LOG_LEVEL
    logging.getLogger().setLevel(logging.DEBUG)
    for existing in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(existing, logging.Logger):
            existing.setLevel(logging.DEBUG)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: Any) -> None:
    """
    Log ``message`` with ``key=value`` pairs appended, separated by ``|``.

    Args:
        logger: Logger to write to
        level: Method name on the logger (debug, info, warning, error)
        message: Log message
        **context: Pairs appended in keyword order
    """
    if context:
        message = " | ".join([message, *(f"{key}={value}" for key, value in context.items())])
    logger.log(logging.getLevelName(level.upper()), message)
