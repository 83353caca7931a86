"""
Human readable synthesis plan.

Summarises what a service stack is about to create: each component with its
constructs and capabilities, the resolved bindings, and every configuration
key that more than one layer tried to set.
"""

from typing import Any, Dict, Iterable, List, Optional

from .base import BaseComponent


def build_plan(components: Iterable[BaseComponent], bindings: Optional[Iterable[Any]] = None) -> Dict[str, Any]:
    """Collect the plan for synthesized ``components`` as plain data."""
    plan_components = []
    for component in components:
        summary = component.builder.get_build_summary()
        plan_components.append({
            "name": component.spec.name,
            "type": component.get_type(),
            "constructs": component.get_construct_handles(),
            "capabilities": sorted(component.get_capabilities()),
            "configuration": summary.to_dict(),
        })

    plan_bindings = [
        {
            "source": binding.source,
            "target": binding.target,
            "capability": binding.capability,
            "access": binding.access,
            "environment": sorted(binding.environment),
        }
        for binding in bindings or []
    ]
    return {"components": plan_components, "bindings": plan_bindings}


def format_plan(components: Iterable[BaseComponent], bindings: Optional[Iterable[Any]] = None) -> str:
    """Render the plan as indented text for logs and the console."""
    plan = build_plan(components, bindings)
    lines: List[str] = [f"Components ({len(plan['components'])}):"]

    for component in plan["components"]:
        lines.append(
            f"  {component['name']} [{component['type']}] "
            f"{len(component['constructs'])} constructs, "
            f"capabilities: {', '.join(component['capabilities']) or 'none'}"
        )
        for layer in component["configuration"]["layers"]:
            lines.append(f"    layer {layer['priority']} {layer['name']}: {layer['keys']} keys")
        conflicts = component["configuration"]["conflicts"]
        if conflicts:
            lines.append(f"    conflicts ({len(conflicts)}):")
            for conflict in conflicts:
                overridden = ", ".join(
                    f"{layer}={value!r}" for layer, value in conflict["values"].items()
                )
                lines.append(f"      {conflict['key']}: {conflict['winner']} wins ({overridden})")

    lines.append(f"Bindings ({len(plan['bindings'])}):")
    for binding in plan["bindings"]:
        lines.append(
            f"  {binding['source']} -> {binding['target']} "
            f"({binding['capability']}, {binding['access']})"
        )
        if binding["environment"]:
            lines.append(f"    env: {', '.join(binding['environment'])}")
    return "\n".join(lines)
