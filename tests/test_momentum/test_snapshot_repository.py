"""Tests for SnapshotRepository with mocked Database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from ar_momentum.momentum.repository import SnapshotRepository, _record_to_artist

UNTIL = datetime(2026, 3, 15, tzinfo=timezone.utc)
SINCE = UNTIL - timedelta(days=14)


@pytest.fixture
def mock_db():
    return AsyncMock()


@pytest.fixture
def repo(mock_db):
    return SnapshotRepository(mock_db)


def _artist_row(**overrides):
    row = {"id": "a1", "name": "Test Artist", "slug": "test-artist", "genres": ["indie"]}
    row.update(overrides)
    return row


class TestRecordToArtist:
    """Test the module-level converter."""

    def test_basic_conversion(self):
        artist = _record_to_artist(_artist_row())
        assert artist.artist_id == "a1"
        assert artist.genres == ("indie",)
        assert artist.slug == "test-artist"

    def test_null_genres(self):
        assert _record_to_artist(_artist_row(genres=None)).genres == ()


class TestCohortQueries:
    """Artist lookups."""

    @pytest.mark.asyncio
    async def test_get_artist_missing(self, repo, mock_db):
        mock_db.fetchrow.return_value = None
        assert await repo.get_artist("nope") is None

    @pytest.mark.asyncio
    async def test_find_by_genres_uses_overlap(self, repo, mock_db):
        mock_db.fetch.return_value = [_artist_row(), _artist_row(id="a2")]

        artists = await repo.find_artists_by_genres(("indie", "pop"))

        assert [a.artist_id for a in artists] == ["a1", "a2"]
        sql, genres = mock_db.fetch.call_args.args
        assert "&&" in sql
        assert genres == ["indie", "pop"]

    @pytest.mark.asyncio
    async def test_find_without_genres_returns_all(self, repo, mock_db):
        mock_db.fetch.return_value = [_artist_row()]

        await repo.find_artists_by_genres([])

        sql = mock_db.fetch.call_args.args[0]
        assert "&&" not in sql
        assert len(mock_db.fetch.call_args.args) == 1


class TestSnapshotQueries:
    """Batched window reads."""

    @pytest.mark.asyncio
    async def test_groups_by_artist(self, repo, mock_db):
        mock_db.fetch.return_value = [
            {"artist_id": "a1", "snapshot_date": SINCE, "popularity": 40, "followers": 10},
            {"artist_id": "a1", "snapshot_date": UNTIL, "popularity": 45, "followers": 12},
            {"artist_id": "a2", "snapshot_date": UNTIL, "popularity": 70, "followers": 99},
        ]

        result = await repo.get_snapshots(["a1", "a2"], SINCE, UNTIL)

        assert [s.popularity for s in result["a1"]] == [40, 45]
        assert len(result["a2"]) == 1
        _, ids, since, until = mock_db.fetch.call_args.args
        assert ids == ["a1", "a2"]
        assert (since, until) == (SINCE, UNTIL)

    @pytest.mark.asyncio
    async def test_empty_ids_skip_query(self, repo, mock_db):
        assert await repo.get_snapshots([], SINCE, UNTIL) == {}
        assert await repo.get_social_snapshots([], SINCE, UNTIL) == {}
        mock_db.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_social_snapshots_carry_platform(self, repo, mock_db):
        mock_db.fetch.return_value = [
            {
                "artist_id": "a1",
                "platform": "tiktok",
                "artist_social_id": 7,
                "snapshot_date": UNTIL,
                "follower_count": 5000,
            },
        ]

        result = await repo.get_social_snapshots(["a1"], SINCE, UNTIL)

        snap = result["a1"][0]
        assert snap.platform == "tiktok"
        assert snap.artist_social_id == "7"
        assert snap.follower_count == 5000
