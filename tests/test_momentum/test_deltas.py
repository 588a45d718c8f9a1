"""Tests for window filtering and first-vs-last delta calculation."""

from datetime import datetime, timedelta, timezone

import pytest

from ar_momentum.momentum.deltas import (
    compute_artist_deltas,
    compute_bounded_delta,
    compute_growth_pct,
    compute_platform_deltas,
    compute_window_delta,
    count_in_window,
    filter_window,
    validate_snapshots,
)
from ar_momentum.momentum.errors import InvalidInputError
from ar_momentum.momentum.schemas import ArtistRef, ArtistSnapshot, SocialSnapshot

PLATFORMS = ("instagram", "tiktok", "youtube")
UNTIL = datetime(2026, 3, 15, tzinfo=timezone.utc)
SINCE = UNTIL - timedelta(days=14)


def _snap(days_ago: float, popularity=50, followers=1000, artist_id="a1"):
    return ArtistSnapshot(
        artist_id=artist_id,
        snapshot_date=UNTIL - timedelta(days=days_ago),
        popularity=popularity,
        followers=followers,
    )


def _social(days_ago: float, platform: str, count, artist_id="a1"):
    return SocialSnapshot(
        artist_id=artist_id,
        platform=platform,
        snapshot_date=UNTIL - timedelta(days=days_ago),
        follower_count=count,
    )


@pytest.fixture
def artist():
    return ArtistRef(artist_id="a1", name="Test Artist", genres=("indie",))


class TestFilterWindow:
    """Window bounds and ordering."""

    def test_bounds_are_inclusive(self):
        snaps = [_snap(14), _snap(7), _snap(0), _snap(15), _snap(-1)]
        result = filter_window(snaps, SINCE, UNTIL)
        assert [s.snapshot_date for s in result] == [
            SINCE, UNTIL - timedelta(days=7), UNTIL,
        ]

    def test_sorts_oldest_first(self):
        snaps = [_snap(1), _snap(10), _snap(5)]
        result = filter_window(snaps, SINCE, UNTIL)
        assert [s.snapshot_date for s in result] == sorted(s.snapshot_date for s in snaps)

    def test_equal_timestamps_keep_write_order(self):
        first = _snap(3, popularity=40)
        second = _snap(3, popularity=45)
        result = filter_window([second, _snap(9), first], SINCE, UNTIL)
        assert result[-2:] == [second, first]

    def test_naive_timestamps_treated_as_utc(self):
        naive = ArtistSnapshot(
            artist_id="a1",
            snapshot_date=datetime(2026, 3, 10),
            popularity=50,
            followers=10,
        )
        assert filter_window([naive], SINCE, UNTIL) == [naive]


class TestDeltaFormulas:
    """Bounded and unbounded deltas."""

    def test_bounded_delta_is_signed_difference(self):
        assert compute_bounded_delta(50, 60) == 10.0
        assert compute_bounded_delta(60, 45) == -15.0

    def test_bounded_delta_treats_missing_as_zero(self):
        assert compute_bounded_delta(None, 30) == 30.0

    def test_growth_pct(self):
        assert compute_growth_pct(1000, 1100) == pytest.approx(0.1)
        assert compute_growth_pct(1000, 900) == pytest.approx(-0.1)

    def test_growth_from_zero_reports_zero(self):
        assert compute_growth_pct(0, 500) == 0.0

    def test_growth_without_baseline_reports_zero(self):
        assert compute_growth_pct(None, 500) == 0.0

    def test_window_delta_needs_two_samples(self):
        assert compute_window_delta([_snap(1)], lambda s: s.popularity, bounded=True) is None
        assert compute_window_delta([], lambda s: s.popularity, bounded=True) is None

    def test_window_delta_uses_first_and_last_only(self):
        samples = [_snap(10, popularity=50), _snap(5, popularity=90), _snap(1, popularity=55)]
        assert compute_window_delta(samples, lambda s: s.popularity, bounded=True) == 5.0


class TestPlatformDeltas:
    """Secondary platform growth."""

    def test_missing_platform_is_zero(self):
        socials = [_social(10, "instagram", 1000), _social(1, "instagram", 1500)]
        deltas = compute_platform_deltas(socials, PLATFORMS, SINCE, UNTIL)
        assert deltas == {"instagram": pytest.approx(0.5), "tiktok": 0.0, "youtube": 0.0}

    def test_single_sample_is_zero(self):
        socials = [_social(2, "tiktok", 800)]
        deltas = compute_platform_deltas(socials, PLATFORMS, SINCE, UNTIL)
        assert deltas["tiktok"] == 0.0

    def test_out_of_window_samples_ignored(self):
        socials = [
            _social(30, "youtube", 100),
            _social(10, "youtube", 1000),
            _social(2, "youtube", 1200),
        ]
        deltas = compute_platform_deltas(socials, PLATFORMS, SINCE, UNTIL)
        assert deltas["youtube"] == pytest.approx(0.2)


class TestComputeArtistDeltas:
    """Full per-artist delta computation."""

    def test_basic(self, artist):
        snaps = [
            _snap(10, popularity=50, followers=1000),
            _snap(5, popularity=55, followers=1050),
            _snap(1, popularity=60, followers=1200),
        ]
        socials = [_social(9, "instagram", 2000), _social(2, "instagram", 2200)]

        deltas = compute_artist_deltas(artist, snaps, socials, SINCE, UNTIL, PLATFORMS)

        assert deltas.delta_popularity == 10.0
        assert deltas.delta_followers_pct == pytest.approx(0.2)
        assert deltas.platform_deltas["instagram"] == pytest.approx(0.1)
        assert deltas.current_popularity == 60
        assert deltas.current_followers == 1200
        assert deltas.sparkline == (50, 55, 60)
        assert deltas.artist_id == "a1"

    def test_insufficient_data_returns_none(self, artist):
        snaps = [_snap(1), _snap(20)]
        assert compute_artist_deltas(artist, snaps, [], SINCE, UNTIL, PLATFORMS) is None

    def test_zero_follower_baseline(self, artist):
        snaps = [_snap(10, followers=0), _snap(1, followers=500)]
        deltas = compute_artist_deltas(artist, snaps, [], SINCE, UNTIL, PLATFORMS)
        assert deltas.delta_followers_pct == 0.0

    def test_missing_popularity_counts_as_zero(self, artist):
        snaps = [_snap(10, popularity=None), _snap(1, popularity=20)]
        deltas = compute_artist_deltas(artist, snaps, [], SINCE, UNTIL, PLATFORMS)
        assert deltas.delta_popularity == 20.0
        assert deltas.sparkline == (0, 20)

    def test_rejects_negative_followers(self, artist):
        snaps = [_snap(10, followers=-5), _snap(1)]
        with pytest.raises(InvalidInputError):
            compute_artist_deltas(artist, snaps, [], SINCE, UNTIL, PLATFORMS)


class TestValidateSnapshots:
    """Malformed input detection."""

    def test_non_numeric_popularity(self):
        with pytest.raises(InvalidInputError, match="not numeric"):
            validate_snapshots("a1", [_snap(1, popularity="high")])

    def test_popularity_out_of_range(self):
        with pytest.raises(InvalidInputError, match="out of range"):
            validate_snapshots("a1", [_snap(1, popularity=101)])

    def test_nan_popularity(self):
        with pytest.raises(InvalidInputError):
            validate_snapshots("a1", [_snap(1, popularity=float("nan"))])

    def test_malformed_timestamp(self):
        bad = ArtistSnapshot(artist_id="a1", snapshot_date="2026-03-01", popularity=1)
        with pytest.raises(InvalidInputError, match="not a datetime"):
            validate_snapshots("a1", [bad])

    def test_negative_social_count(self):
        with pytest.raises(InvalidInputError, match="tiktok"):
            validate_snapshots("a1", [], [_social(1, "tiktok", -1)])

    def test_large_follower_counts_accepted(self):
        validate_snapshots("a1", [_snap(1, followers=5_000_000_000)])

    def test_count_in_window(self):
        assert count_in_window([_snap(1), _snap(3), _snap(30)], SINCE, UNTIL) == 2
