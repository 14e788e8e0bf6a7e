"""fieldkit - shared utilities for Nexus services.

Contains:
    - logging: structured hierarchical logging with service context
"""

__version__ = "1.0.0"
