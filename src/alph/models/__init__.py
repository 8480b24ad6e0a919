from alph.models.outcomes import (
    ConfigurationOutcome,
    DetectionOutcome,
    ListingOutcome,
    RemovalOutcome,
    RollbackOutcome,
    ValidationOutcome,
    summarize_configuration,
    summarize_detection,
    summarize_removal,
)
from alph.models.server import (
    Authentication,
    BackupRecord,
    ServerSpec,
    TargetDescriptor,
    Transport,
    parse_bearer,
)

__all__ = [
    "Authentication",
    "BackupRecord",
    "ConfigurationOutcome",
    "DetectionOutcome",
    "ListingOutcome",
    "RemovalOutcome",
    "RollbackOutcome",
    "ServerSpec",
    "TargetDescriptor",
    "Transport",
    "ValidationOutcome",
    "parse_bearer",
    "summarize_configuration",
    "summarize_detection",
    "summarize_removal",
]
