"""
Platform component catalog.

Each subpackage wraps one AWS resource family as a component: a
ConfigBuilder that resolves layered configuration, a construct that creates
the resources, and a creator that registers the type with the registry.
"""

__version__ = "0.1.0"
