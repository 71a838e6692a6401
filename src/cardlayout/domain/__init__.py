"""Domain layer — tiers, geometry records, and layout results.

This layer depends only on stdlib and pydantic.
It must never import from engine, services, coordinator, or config.
"""
