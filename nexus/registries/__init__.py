"""
Nexus Static Registries

Map nodes, CQB variants, macro sets, TTL profiles, comms templates and
gameplay variants. validators.py cross-checks them.
"""
