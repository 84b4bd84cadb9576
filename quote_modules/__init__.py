"""
Quote modules -- the pricing rules plugged into the kernel pipeline.

Each module prices one concern (volume, transport, labor, insurance,
special handling, calendar, cross-selling) and publishes typed facts the
others may read. ``catalog`` wires the standard set.
"""

from quote_modules.catalog import (
    build_default_registry,
    build_orchestrator,
    default_modules,
)

__all__ = [
    "build_default_registry",
    "build_orchestrator",
    "default_modules",
]
