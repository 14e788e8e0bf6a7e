"""
Nexus Core Package

Contracts and primitives shared by the services: event envelopes,
deterministic ordering, canonical JSON, timestamp normalization and errors.

Invariants:
- Projections are pure functions of their inputs
- Deterministic ordering with explicit tie-breaks
- Source-namespaced entry ids
"""

__version__ = "1.0.0"
