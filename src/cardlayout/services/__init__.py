"""Service layer — cross-cutting support for the engine and coordinator.

Services may import from the domain, config and engine layers.
They must never import from coordinator, plugins, or output.
"""
