"""Utility modules for the ecosystem vault."""

# CSV parsing
from .csv_utils import ParsedCsv, parse_csv

# Encryption utilities
from .encryption_utils import SecretCodec, generate_key

# Logging utilities
from .logger import (
    ActorContextFilter,
    AzureQueueHandler,
    ContextAwareLogger,
    SecretRedactionFilter,
    configure_logging,
    get_logger,
    redact,
)

# Natural key matching
from .lookup_index import NameIndex, natural_key

# TOTP utilities
from .totp_utils import generate_totp, normalize_seed, validate_seed, verify_totp

__all__ = [
    # CSV parsing
    "ParsedCsv",
    "parse_csv",
    # Encryption utilities
    "SecretCodec",
    "generate_key",
    # Logging utilities
    "ActorContextFilter",
    "AzureQueueHandler",
    "ContextAwareLogger",
    "SecretRedactionFilter",
    "configure_logging",
    "get_logger",
    "redact",
    # Natural key matching
    "NameIndex",
    "natural_key",
    # TOTP utilities
    "generate_totp",
    "normalize_seed",
    "validate_seed",
    "verify_totp",
]
