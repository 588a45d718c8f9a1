"""Momentum scoring: window deltas, cohort normalization, ranking.

Components:
- ArtistSnapshot / SocialSnapshot / ArtistRef: input data
- ArtistDeltas / MomentumRecord: derived results
- MomentumConfig: Pydantic settings (MOMENTUM_* env vars)
- SnapshotRepository: batched window reads from PostgreSQL
- MomentumScorer: leaderboard and single-artist orchestrator
- InsufficientDataError / InvalidInputError / DataSourceError: error taxonomy
"""

from ar_momentum.momentum.config import MomentumConfig
from ar_momentum.momentum.errors import (
    DataSourceError,
    InsufficientDataError,
    InvalidInputError,
    MomentumError,
)
from ar_momentum.momentum.repository import SnapshotRepository
from ar_momentum.momentum.schemas import (
    ArtistDeltas,
    ArtistRef,
    ArtistSnapshot,
    MomentumRecord,
    SocialSnapshot,
)
from ar_momentum.momentum.scorer import SECONDARY_PLATFORMS, MomentumScorer

__all__ = [
    "ArtistDeltas",
    "ArtistRef",
    "ArtistSnapshot",
    "DataSourceError",
    "InsufficientDataError",
    "InvalidInputError",
    "MomentumConfig",
    "MomentumError",
    "MomentumRecord",
    "MomentumScorer",
    "SECONDARY_PLATFORMS",
    "SnapshotRepository",
    "SocialSnapshot",
]
