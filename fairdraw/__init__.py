"""Progressive fair draw of SAFE and CHOP weeks over a committed season."""

from .commitment import CommitmentDocument, commit, generate_seeds, verify_commitment
from .draw import AuxiliaryInput, DrawOutcome, Outcome, build_full_seed, draw
from .errors import (
    AlreadyRevealed,
    ConfigMismatch,
    FairDrawError,
    OutOfOrder,
    ProtocolViolation,
    SeedUnavailable,
)
from .ledger import SeasonLedger, SeasonStatus
from .season import LedgerState, SeasonConfig, fold_results
from .verifier import replay_season, verify, verify_season

__all__ = [
    "AlreadyRevealed",
    "AuxiliaryInput",
    "CommitmentDocument",
    "ConfigMismatch",
    "DrawOutcome",
    "FairDrawError",
    "LedgerState",
    "OutOfOrder",
    "Outcome",
    "ProtocolViolation",
    "SeasonConfig",
    "SeasonLedger",
    "SeasonStatus",
    "SeedUnavailable",
    "build_full_seed",
    "commit",
    "draw",
    "fold_results",
    "generate_seeds",
    "replay_season",
    "verify",
    "verify_commitment",
    "verify_season",
]
