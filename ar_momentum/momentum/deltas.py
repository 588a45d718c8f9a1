"""Window delta calculation for artist snapshots.

Reduces an ordered sequence of snapshots to a single first-vs-last delta:
an absolute difference for bounded metrics (popularity, 0-100) and a
fractional growth rate for unbounded metrics (follower counts).

The policy is "earliest vs. latest available sample" inside the window,
not a true min/max, so irregular sampling cadence is tolerated. All
functions are stateless; validation failures raise ``InvalidInputError``
and are handled by the scorer.
"""

import math
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from ar_momentum.momentum.errors import InvalidInputError
from ar_momentum.momentum.schemas import (
    ArtistDeltas,
    ArtistRef,
    ArtistSnapshot,
    SocialSnapshot,
)

T = TypeVar("T")

POPULARITY_MIN = 0
POPULARITY_MAX = 100


# ── Validation ───────────────────────────────────────────


def _as_utc(artist_id: str, ts: Any) -> datetime:
    if not isinstance(ts, datetime):
        raise InvalidInputError(artist_id, f"snapshot_date {ts!r} is not a datetime")
    # Make naive timestamps UTC-aware for comparison
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _check_count(artist_id: str, field_name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(artist_id, f"{field_name} {value!r} is not an integer")
    if value < 0:
        raise InvalidInputError(artist_id, f"{field_name} {value} is negative")


def _check_popularity(artist_id: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(artist_id, f"popularity {value!r} is not numeric")
    if math.isnan(value) or not POPULARITY_MIN <= value <= POPULARITY_MAX:
        raise InvalidInputError(artist_id, f"popularity {value!r} out of range")


def validate_snapshots(
    artist_id: str,
    snapshots: Iterable[ArtistSnapshot],
    social_snapshots: Iterable[SocialSnapshot] = (),
) -> None:
    """Reject malformed timestamps, non-numeric or negative metrics.

    Raises:
        InvalidInputError: On the first malformed value found.
    """
    for snap in snapshots:
        _as_utc(artist_id, snap.snapshot_date)
        _check_popularity(artist_id, snap.popularity)
        _check_count(artist_id, "followers", snap.followers)

    for snap in social_snapshots:
        _as_utc(artist_id, snap.snapshot_date)
        _check_count(artist_id, f"{snap.platform} follower_count", snap.follower_count)


# ── Pure delta functions ─────────────────────────────────


def filter_window(
    items: Iterable[T],
    since: datetime,
    until: datetime,
    timestamp_of: Callable[[T], datetime] = lambda s: s.snapshot_date,
) -> list[T]:
    """Keep items with ``since <= timestamp <= until``, oldest first.

    The sort is stable, so among snapshots sharing a timestamp the one
    written last stays last and wins as "current".
    """
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)

    def _ts(item: T) -> datetime:
        ts = timestamp_of(item)
        return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)

    in_window = [item for item in items if since <= _ts(item) <= until]
    in_window.sort(key=_ts)
    return in_window


def compute_bounded_delta(first: float | None, last: float | None) -> float:
    """Signed absolute change of a bounded metric. Missing values count as 0."""
    return float((last or 0) - (first or 0))


def compute_growth_pct(first: int | None, last: int | None) -> float:
    """Fractional growth ``(last - first) / first`` of an unbounded metric.

    Returns 0.0 when there is no positive baseline: no prior baseline means
    no measurable growth, so a jump from 0 to 500 followers also reports 0.
    """
    if not first or first <= 0:
        return 0.0
    return ((last or 0) - first) / first


def compute_window_delta(
    samples: Sequence[T],
    value_of: Callable[[T], Any],
    *,
    bounded: bool,
) -> float | None:
    """First-vs-last delta over an already windowed, ordered sequence.

    Args:
        samples: In-window samples, oldest first.
        value_of: Extracts the metric value from a sample.
        bounded: Absolute delta if True, fractional growth if False.

    Returns:
        The delta, or None when fewer than 2 samples exist. None means
        "no signal yet" and must be treated as an exclusion, not a zero.
    """
    if len(samples) < 2:
        return None

    first = value_of(samples[0])
    last = value_of(samples[-1])
    if bounded:
        return compute_bounded_delta(first, last)
    return compute_growth_pct(first, last)


def compute_platform_deltas(
    social_snapshots: Iterable[SocialSnapshot],
    platforms: Iterable[str],
    since: datetime,
    until: datetime,
) -> dict[str, float]:
    """Follower growth per secondary platform.

    A platform with no link, or fewer than two in-window samples,
    contributes exactly 0.0. It still takes part in cohort normalization.
    """
    by_platform: dict[str, list[SocialSnapshot]] = {}
    for snap in social_snapshots:
        by_platform.setdefault(snap.platform, []).append(snap)

    deltas: dict[str, float] = {}
    for platform in platforms:
        window = filter_window(by_platform.get(platform, []), since, until)
        delta = compute_window_delta(
            window, lambda s: s.follower_count, bounded=False,
        )
        deltas[platform] = delta if delta is not None else 0.0
    return deltas


def compute_artist_deltas(
    artist: ArtistRef,
    snapshots: Iterable[ArtistSnapshot],
    social_snapshots: Iterable[SocialSnapshot],
    since: datetime,
    until: datetime,
    platforms: Iterable[str],
) -> ArtistDeltas | None:
    """Compute every tracked signal's delta for one artist.

    Args:
        artist: Artist being scored.
        snapshots: Streaming snapshots (any order, may exceed the window).
        social_snapshots: Social follower snapshots across all platforms.
        since: Window start (inclusive).
        until: Window end (inclusive).
        platforms: Secondary platform names to report deltas for.

    Returns:
        ArtistDeltas, or None when fewer than 2 streaming snapshots fall
        inside the window.

    Raises:
        InvalidInputError: If any snapshot value is malformed.
    """
    snapshots = list(snapshots)
    social_snapshots = list(social_snapshots)
    validate_snapshots(artist.artist_id, snapshots, social_snapshots)

    window = filter_window(snapshots, since, until)
    delta_popularity = compute_window_delta(
        window, lambda s: s.popularity, bounded=True,
    )
    if delta_popularity is None:
        return None

    delta_followers_pct = compute_window_delta(
        window, lambda s: s.followers, bounded=False,
    )
    last = window[-1]

    return ArtistDeltas(
        artist=artist,
        delta_popularity=delta_popularity,
        delta_followers_pct=delta_followers_pct or 0.0,
        platform_deltas=compute_platform_deltas(
            social_snapshots, platforms, since, until,
        ),
        current_popularity=last.popularity or 0,
        current_followers=last.followers or 0,
        sparkline=tuple(s.popularity or 0 for s in window),
    )


def count_in_window(
    snapshots: Iterable[ArtistSnapshot],
    since: datetime,
    until: datetime,
) -> int:
    """Number of streaming snapshots inside the window."""
    return len(filter_window(snapshots, since, until))
