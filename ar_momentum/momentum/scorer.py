"""Momentum scorer combining per-signal deltas into one ranked score.

Cohort mode (two or more artists with enough data) normalizes each signal
against the cohort and combines the z-scores:

  score = 0.4 * (z_popularity + 0.5 * z_followers)
        + 0.6 * (0.4 * z_instagram + 0.3 * z_tiktok + 0.3 * z_youtube)

Single mode (exactly one artist) has no distribution to normalize
against, so scaled raw deltas stand in for z-scores:

  score = 0.4 * (d_popularity / 10 + 5 * d_followers)
        + 0.6 * (3 * d_instagram + 2 * d_tiktok + 2 * d_youtube)

Weights are fixed constants: stored alert thresholds were set against
them. Single-mode scores are not comparable with cohort-mode scores.

Components:
- SecondaryPlatform / SECONDARY_PLATFORMS: fixed social signal table
- score_cohort / score_single / score_against_cohort: pure scoring
- rank_records: stable descending sort + truncation
- MomentumScorer: async orchestrator over the snapshot repository
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from ar_momentum.momentum.config import MomentumConfig
from ar_momentum.momentum.deltas import compute_artist_deltas, count_in_window
from ar_momentum.momentum.errors import (
    DataSourceError,
    InsufficientDataError,
    InvalidInputError,
)
from ar_momentum.momentum.normalization import cohort_zscores, zscore
from ar_momentum.momentum.schemas import (
    ArtistDeltas,
    ArtistRef,
    MomentumRecord,
    ScoringMode,
)
from ar_momentum.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────


class SecondaryPlatform(NamedTuple):
    """A social platform signal with its cohort weight and single-mode scale."""

    platform: str
    weight: float
    single_scale: float


SECONDARY_PLATFORMS: tuple[SecondaryPlatform, ...] = (
    SecondaryPlatform("instagram", 0.4, 3.0),
    SecondaryPlatform("tiktok", 0.3, 2.0),
    SecondaryPlatform("youtube", 0.3, 2.0),
)

PLATFORM_NAMES: tuple[str, ...] = tuple(p.platform for p in SECONDARY_PLATFORMS)

PRIMARY_WEIGHT = 0.4
"""Share of the score from streaming-platform growth."""

SOCIAL_WEIGHT = 0.6
"""Share of the score from secondary social growth."""

FOLLOWERS_WEIGHT = 0.5
"""Follower growth weight relative to popularity inside the primary term."""

SINGLE_POPULARITY_DIVISOR = 10.0
SINGLE_FOLLOWERS_SCALE = 5.0


# ── Pure scoring ─────────────────────────────────────────


def composite_score(signals: dict[str, float]) -> float:
    """Fixed-weight combination of normalized signals.

    Args:
        signals: Signal name -> z-score. Keys are ``popularity``,
            ``followers`` and each secondary platform name. Missing keys
            count as 0.
    """
    primary = signals.get("popularity", 0.0) + FOLLOWERS_WEIGHT * signals.get(
        "followers", 0.0
    )
    social = sum(
        p.weight * signals.get(p.platform, 0.0) for p in SECONDARY_PLATFORMS
    )
    return PRIMARY_WEIGHT * primary + SOCIAL_WEIGHT * social


def _signal_values(deltas: ArtistDeltas) -> dict[str, float]:
    values = {
        "popularity": deltas.delta_popularity,
        "followers": deltas.delta_followers_pct,
    }
    for name in PLATFORM_NAMES:
        values[name] = deltas.platform_deltas.get(name, 0.0)
    return values


def _to_record(
    deltas: ArtistDeltas,
    score: float,
    mode: ScoringMode,
    cohort_size: int,
    components: dict[str, float],
) -> MomentumRecord:
    artist = deltas.artist
    return MomentumRecord(
        artist_id=artist.artist_id,
        name=artist.name,
        genres=artist.genres,
        slug=artist.slug,
        current_popularity=deltas.current_popularity,
        current_followers=deltas.current_followers,
        delta_popularity=deltas.delta_popularity,
        delta_followers_pct=deltas.delta_followers_pct,
        delta_instagram_pct=deltas.platform_deltas.get("instagram", 0.0),
        delta_tiktok_pct=deltas.platform_deltas.get("tiktok", 0.0),
        delta_youtube_pct=deltas.platform_deltas.get("youtube", 0.0),
        momentum_score=score,
        sparkline=deltas.sparkline,
        mode=mode,
        cohort_size=cohort_size,
        components={k: round(v, 6) for k, v in components.items()},
    )


def score_single(deltas: ArtistDeltas) -> MomentumRecord:
    """Score a lone artist from scaled raw deltas (single mode)."""
    scaled = {
        "popularity": deltas.delta_popularity / SINGLE_POPULARITY_DIVISOR,
        "followers": deltas.delta_followers_pct * SINGLE_FOLLOWERS_SCALE,
    }
    for p in SECONDARY_PLATFORMS:
        scaled[p.platform] = deltas.platform_deltas.get(p.platform, 0.0) * p.single_scale

    social = sum(scaled[p.platform] for p in SECONDARY_PLATFORMS)
    score = PRIMARY_WEIGHT * (scaled["popularity"] + scaled["followers"]) + SOCIAL_WEIGHT * social

    return _to_record(deltas, score, "single", 1, scaled)


def score_cohort(
    cohort: Sequence[ArtistDeltas],
    *,
    include_self: bool = True,
) -> list[MomentumRecord]:
    """Score every cohort member from cohort-normalized deltas.

    Artists without a link for a platform carry a 0.0 delta for it, which
    participates in that platform's distribution.

    Returns:
        One record per input, in input order (unsorted).
    """
    n = len(cohort)
    if n == 0:
        return []

    values = [_signal_values(d) for d in cohort]
    z_by_signal = {
        name: cohort_zscores([v[name] for v in values], include_self=include_self)
        for name in values[0]
    }

    records: list[MomentumRecord] = []
    for i, deltas in enumerate(cohort):
        z = {name: z_by_signal[name][i] for name in z_by_signal}
        records.append(_to_record(deltas, composite_score(z), "cohort", n, z))
    return records


def score_against_cohort(
    deltas: ArtistDeltas,
    cohort: Sequence[ArtistDeltas],
    *,
    include_self: bool = True,
) -> MomentumRecord:
    """Score one artist against an externally built peer cohort.

    With fewer than two peers every z-score degrades to 0 (see
    ``normalization.zscore``); this does not fall back to single mode.
    """
    if not include_self:
        cohort = [c for c in cohort if c.artist_id != deltas.artist_id]

    own = _signal_values(deltas)
    peer_values = [_signal_values(c) for c in cohort]
    z = {
        name: zscore(value, [pv[name] for pv in peer_values])
        for name, value in own.items()
    }
    return _to_record(deltas, composite_score(z), "cohort", len(cohort), z)


def score_deltas(
    cohort: Sequence[ArtistDeltas],
    *,
    include_self: bool = True,
) -> list[MomentumRecord]:
    """Pick single or cohort mode from the number of qualifying artists."""
    if len(cohort) == 1:
        return [score_single(cohort[0])]
    return score_cohort(cohort, include_self=include_self)


def rank_records(
    records: Sequence[MomentumRecord],
    limit: int | None = None,
) -> list[MomentumRecord]:
    """Sort descending by score and truncate.

    ``sorted`` is stable (also with ``reverse=True``), so equal scores keep
    their input order regardless of how the records were computed.
    """
    ranked = sorted(records, key=lambda r: r.momentum_score, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


# ── Service ──────────────────────────────────────────────


class MomentumScorer:
    """Computes leaderboards and single-artist momentum.

    Pure computation lives in the module-level functions above. This class
    fetches cohorts and snapshot windows from ``snapshot_repo`` (any object
    with the ``SnapshotRepository`` read methods), computes per-artist
    deltas, and aggregates.

    Snapshot windows are fetched in batches with bounded concurrency;
    aggregation happens only after every batch completes, in cohort order.
    """

    def __init__(
        self,
        config: MomentumConfig | None = None,
        snapshot_repo: Any = None,
    ) -> None:
        self._config = config or MomentumConfig()
        self._repo = snapshot_repo

    @property
    def config(self) -> MomentumConfig:
        return self._config

    def _window(
        self,
        window_days: int | None,
        now: datetime | None,
    ) -> tuple[datetime, datetime]:
        days = window_days if window_days is not None else self._config.default_window_days
        if days < 1:
            raise ValueError(f"window_days must be >= 1, got {days}")
        until = now or datetime.now(timezone.utc)
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        return until - timedelta(days=days), until

    async def _find_cohort(self, genres: Sequence[str]) -> list[ArtistRef]:
        try:
            return await self._repo.find_artists_by_genres(list(genres))
        except Exception as e:
            raise DataSourceError(
                f"Failed to read cohort for genres {list(genres)}: {e}"
            ) from e

    def _deltas_for(
        self,
        artist: ArtistRef,
        snapshots: list,
        social_snapshots: list,
        since: datetime,
        until: datetime,
    ) -> ArtistDeltas:
        deltas = compute_artist_deltas(
            artist, snapshots, social_snapshots, since, until, PLATFORM_NAMES,
        )
        if deltas is None:
            raise InsufficientDataError(
                artist.artist_id, count_in_window(snapshots, since, until),
            )
        return deltas

    async def _fetch_windows(
        self,
        artist_ids: list[str],
        since: datetime,
        until: datetime,
    ) -> tuple[dict[str, list], dict[str, list]]:
        snapshots = await self._repo.get_snapshots(artist_ids, since, until)
        socials = await self._repo.get_social_snapshots(artist_ids, since, until)
        return snapshots, socials

    async def collect_deltas(
        self,
        artists: Sequence[ArtistRef],
        since: datetime,
        until: datetime,
    ) -> list[ArtistDeltas]:
        """Compute deltas for every artist with enough valid data.

        Artists with insufficient or invalid data, and artists whose
        snapshot batch failed to load, are excluded without aborting.

        Returns:
            ArtistDeltas in the same order as ``artists``.
        """
        metrics = get_metrics()
        size = self._config.fetch_batch_size
        batches = [list(artists[i:i + size]) for i in range(0, len(artists), size)]
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def fetch(batch: list[ArtistRef]):
            async with semaphore:
                return await self._fetch_windows(
                    [a.artist_id for a in batch], since, until,
                )

        results = await asyncio.gather(
            *(fetch(batch) for batch in batches), return_exceptions=True,
        )

        collected: list[ArtistDeltas] = []
        for batch, result in zip(batches, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Snapshot fetch failed for %d artists: %s", len(batch), result,
                )
                metrics.record_entity("fetch_failed", len(batch))
                continue

            snapshots, socials = result
            for artist in batch:
                try:
                    collected.append(
                        self._deltas_for(
                            artist,
                            snapshots.get(artist.artist_id, []),
                            socials.get(artist.artist_id, []),
                            since,
                            until,
                        )
                    )
                    metrics.record_entity("scored")
                except InsufficientDataError as e:
                    logger.debug("Skipping artist: %s", e)
                    metrics.record_entity("insufficient")
                except InvalidInputError as e:
                    logger.warning("Skipping artist: %s", e)
                    metrics.record_entity("invalid")

        return collected

    async def compute_leaderboard(
        self,
        genres: Sequence[str] = (),
        window_days: int | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[MomentumRecord]:
        """Rank the genre cohort (or all artists) by momentum.

        Args:
            genres: Cohort filter; empty means all tracked artists.
            window_days: Delta window (defaults to config).
            limit: Maximum records returned (defaults to config).
            now: Window end (defaults to current UTC time).

        Returns:
            Records sorted non-increasing by score, at most ``limit`` long.

        Raises:
            DataSourceError: If the cohort list cannot be read.
            ValueError: On a non-positive window or limit.
        """
        limit = limit if limit is not None else self._config.default_limit
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        since, until = self._window(window_days, now)

        start = time.perf_counter()
        artists = await self._find_cohort(genres)
        cohort = await self.collect_deltas(artists, since, until)
        records = score_deltas(
            cohort, include_self=self._config.include_self_in_cohort,
        )
        ranked = rank_records(records, limit)

        elapsed = time.perf_counter() - start
        get_metrics().record_scoring_latency("leaderboard", elapsed)
        logger.info(
            "Leaderboard computed: %d artists, %d qualifying, %d returned (%.3fs)",
            len(artists), len(cohort), len(ranked), elapsed,
        )
        return ranked

    async def compute_entity_momentum(
        self,
        artist_id: str,
        window_days: int | None = None,
        now: datetime | None = None,
    ) -> MomentumRecord | None:
        """Score one artist against every artist sharing a genre with it.

        The peer cohort can differ from any leaderboard cohort the artist
        appears in, so the two scores may legitimately disagree.

        Returns:
            MomentumRecord, or None if the artist is unknown, has fewer than
            two snapshots in the window, or has invalid snapshot data.

        Raises:
            DataSourceError: If the peer cohort cannot be read.
        """
        since, until = self._window(window_days, now)
        start = time.perf_counter()

        artist = await self._repo.get_artist(artist_id)
        if artist is None:
            logger.debug("Artist %s not found", artist_id)
            return None

        snapshots, socials = await self._fetch_windows([artist_id], since, until)
        try:
            own = self._deltas_for(
                artist,
                snapshots.get(artist_id, []),
                socials.get(artist_id, []),
                since,
                until,
            )
        except InsufficientDataError as e:
            logger.debug("No momentum yet: %s", e)
            return None
        except InvalidInputError as e:
            logger.warning("Cannot score artist: %s", e)
            return None

        peers = await self._find_cohort(artist.genres)
        cohort = await self.collect_deltas(peers, since, until)
        record = score_against_cohort(
            own, cohort, include_self=self._config.include_self_in_cohort,
        )

        get_metrics().record_scoring_latency("artist", time.perf_counter() - start)
        return record
