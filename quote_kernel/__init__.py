"""
Quote Kernel

A deterministic pricing pipeline for service quotes:
- Pluggable modules folded over an immutable context
- Append-only, categorised accumulator
- Eager dependency validation and stable ordering
- Typed errors for every failure stage
"""

__version__ = "0.1.0"
