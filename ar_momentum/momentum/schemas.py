"""Schema definitions for snapshots and momentum results.

Snapshots map to the ``artist_snapshots`` and ``social_snapshots`` tables.
``ArtistDeltas`` and ``MomentumRecord`` are derived per request and never
persisted by the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

ScoringMode = Literal["cohort", "single"]


@dataclass(frozen=True)
class ArtistRef:
    """Cohort membership entry for a tracked artist.

    Attributes:
        artist_id: Stable artist identifier (Spotify ID).
        name: Display name.
        genres: Genre tags used for cohort membership.
        slug: URL slug, if one has been generated.
    """

    artist_id: str
    name: str
    genres: tuple[str, ...] = ()
    slug: str | None = None


@dataclass(frozen=True)
class ArtistSnapshot:
    """A time-stamped streaming measurement for one artist."""

    artist_id: str
    snapshot_date: datetime
    popularity: int | None = None
    followers: int | None = None


@dataclass(frozen=True)
class SocialSnapshot:
    """A time-stamped follower count for one artist social link."""

    artist_id: str
    platform: str
    snapshot_date: datetime
    follower_count: int | None = None
    artist_social_id: str | None = None


@dataclass(frozen=True)
class ArtistDeltas:
    """Per-signal first-vs-last deltas for one artist over one window.

    Attributes:
        artist: The artist these deltas belong to.
        delta_popularity: Absolute popularity change (last - first).
        delta_followers_pct: Fractional follower growth on the primary platform.
        platform_deltas: Fractional follower growth per secondary platform.
            Platforms the artist has no link for are present with 0.0.
        current_popularity: Popularity of the latest in-window snapshot.
        current_followers: Followers of the latest in-window snapshot.
        sparkline: Popularity of every in-window snapshot, oldest first.
    """

    artist: ArtistRef
    delta_popularity: float
    delta_followers_pct: float
    platform_deltas: dict[str, float] = field(default_factory=dict)
    current_popularity: int = 0
    current_followers: int = 0
    sparkline: tuple[int, ...] = ()

    @property
    def artist_id(self) -> str:
        return self.artist.artist_id


@dataclass(frozen=True)
class MomentumRecord:
    """A scored artist, as returned by leaderboard and single lookups.

    ``momentum_score`` is only comparable within the same computation run;
    ``mode`` records whether it came from z-scores ("cohort") or scaled raw
    deltas ("single").
    """

    artist_id: str
    name: str
    genres: tuple[str, ...]
    current_popularity: int
    current_followers: int
    delta_popularity: float
    delta_followers_pct: float
    delta_instagram_pct: float
    delta_tiktok_pct: float
    delta_youtube_pct: float
    momentum_score: float
    sparkline: tuple[int, ...]
    mode: ScoringMode = "cohort"
    cohort_size: int = 0
    slug: str | None = None
    components: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "artist_id": self.artist_id,
            "name": self.name,
            "slug": self.slug,
            "genres": list(self.genres),
            "current_popularity": self.current_popularity,
            "current_followers": self.current_followers,
            "delta_popularity": self.delta_popularity,
            "delta_followers_pct": self.delta_followers_pct,
            "delta_instagram_pct": self.delta_instagram_pct,
            "delta_tiktok_pct": self.delta_tiktok_pct,
            "delta_youtube_pct": self.delta_youtube_pct,
            "momentum_score": self.momentum_score,
            "sparkline": list(self.sparkline),
            "mode": self.mode,
            "cohort_size": self.cohort_size,
            "components": dict(self.components),
        }
