"""
Nexus error types.

Only the Operation Service raises domain errors, and only NotFoundError.
Projection builders never raise on malformed individual records.
"""


class NexusError(Exception):
    """Base class for Nexus errors"""
    pass


class NotFoundError(NexusError):
    """Referenced Operation or OperationTemplate id does not resolve"""

    def __init__(self, kind: str, refId: str):
        self.kind = kind
        self.refId = refId
        super().__init__(f"{kind} {refId} not found")


class ConfigError(NexusError):
    """Config document failed structural validation"""
    pass
