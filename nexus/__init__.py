"""
Nexus - operation command and tactical overlay engine.

- nexus.core: contracts, event envelopes, ordering, domain records
- nexus.services: operation store and the map projections
- nexus.registries: static registries and their validators
"""

__version__ = "1.0.0"
