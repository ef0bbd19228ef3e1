"""
GitHub Issue Transfer Tool

Moves issues, pull requests, labels and milestones from one GitHub repository
to another, keeping the original issue numbers.
"""

from __future__ import annotations

from .cli import main
from .config import TransferConfig
from .exceptions import (
    ConfigurationError,
    FatalSubmissionError,
    ImportRejectedError,
    MigrationError,
    NumberCollisionError,
    NumberVerificationError,
    RetryExhaustedError,
    TransientRequestError,
)
from .migrator import IssueTransfer, TransferStats
from .sequencer import sequence_slots
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "FatalSubmissionError",
    "ImportRejectedError",
    "IssueTransfer",
    "MigrationError",
    "NumberCollisionError",
    "NumberVerificationError",
    "RetryExhaustedError",
    "TransferConfig",
    "TransferStats",
    "TransientRequestError",
    "main",
    "sequence_slots",
    "setup_logging",
]
