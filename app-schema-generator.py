#!/usr/bin/env python3
"""
Write the JSON Schema and metadata of every registered component.

Each component type gets ``schemas/<type>.schema.json`` holding its
configuration schema plus the creator's description (display name,
category, capabilities). Editors and CI use these files to validate the
``config`` blocks of service manifests without synthesizing a stack.
"""
import json
import logging
import os
import sys

from components.common.registry import default_registry
from helper.logging_config import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "schemas"


def main(output_dir: str = DEFAULT_OUTPUT_DIR) -> bool:
    """Generate the schema files and return whether all of them were written."""
    registry = default_registry()
    os.makedirs(output_dir, exist_ok=True)

    written = 0
    for component_type in registry.list_types():
        creator = registry.get_creator(component_type)
        document = dict(creator.config_schema)
        document["$id"] = f"{component_type}.schema.json"
        document["x-component"] = creator.describe()

        output_path = os.path.join(output_dir, f"{component_type}.schema.json")
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, sort_keys=True)
                f.write("\n")
        except OSError as e:
            logger.error(f"Unable to write {output_path}: {e}")
            continue

        written += 1
        logger.info(f"Schema generated: {output_path}")
        logger.debug(f"  Top-level properties: {len(document.get('properties', {}))}")

    logger.info(f"Generated {written} of {len(registry.list_types())} component schemas")
    return written == len(registry.list_types())


if __name__ == "__main__":
    setup_logging(module_name=__name__)
    success = main(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_OUTPUT_DIR)
    sys.exit(0 if success else 1)
