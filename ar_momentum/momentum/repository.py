"""Read-side repository for artists and their time-stamped snapshots.

Snapshots are appended by the collection jobs; this engine only reads
them, always through bounded ``[since, until]`` window queries.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ar_momentum.momentum.schemas import ArtistRef, ArtistSnapshot, SocialSnapshot
from ar_momentum.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS artists (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    slug        TEXT UNIQUE,
    genres      TEXT[] NOT NULL DEFAULT '{}',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_artists_genres
    ON artists USING GIN (genres);

CREATE TABLE IF NOT EXISTS artist_snapshots (
    id              BIGSERIAL PRIMARY KEY,
    artist_id       TEXT NOT NULL REFERENCES artists(id) ON DELETE CASCADE,
    snapshot_date   TIMESTAMPTZ NOT NULL,
    popularity      INTEGER CHECK (popularity BETWEEN 0 AND 100),
    followers       BIGINT CHECK (followers >= 0)
);

CREATE INDEX IF NOT EXISTS idx_artist_snapshots_artist_date
    ON artist_snapshots(artist_id, snapshot_date);

CREATE TABLE IF NOT EXISTS artist_socials (
    id              BIGSERIAL PRIMARY KEY,
    artist_id       TEXT NOT NULL REFERENCES artists(id) ON DELETE CASCADE,
    platform        TEXT NOT NULL,
    url             TEXT NOT NULL DEFAULT '',
    follower_count  BIGINT,
    UNIQUE (artist_id, platform)
);

CREATE TABLE IF NOT EXISTS social_snapshots (
    id               BIGSERIAL PRIMARY KEY,
    artist_social_id BIGINT NOT NULL REFERENCES artist_socials(id) ON DELETE CASCADE,
    snapshot_date    TIMESTAMPTZ NOT NULL,
    follower_count   BIGINT CHECK (follower_count >= 0)
);

CREATE INDEX IF NOT EXISTS idx_social_snapshots_social_date
    ON social_snapshots(artist_social_id, snapshot_date);
"""


def _record_to_artist(record: Any) -> ArtistRef:
    """Convert an asyncpg Record to an ArtistRef."""
    return ArtistRef(
        artist_id=record["id"],
        name=record["name"],
        genres=tuple(record["genres"] or ()),
        slug=record.get("slug"),
    )


class SnapshotRepository:
    """Artist cohort and snapshot window queries.

    Tables:
        - artists: tracked artists with genre tags
        - artist_snapshots: streaming popularity and followers over time
        - artist_socials / social_snapshots: social follower counts over time
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the artist and snapshot tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Artist snapshot tables ensured")

    async def get_artist(self, artist_id: str) -> ArtistRef | None:
        """Get one artist by ID, or None if it is not tracked."""
        row = await self._db.fetchrow(
            "SELECT id, name, slug, genres FROM artists WHERE id = $1",
            artist_id,
        )
        if row is None:
            return None
        return _record_to_artist(row)

    async def find_artists_by_genres(
        self,
        genres: Sequence[str],
    ) -> list[ArtistRef]:
        """Artists sharing at least one genre tag; all artists if none given.

        Ordered by artist ID so that score ties break deterministically.
        """
        if genres:
            rows = await self._db.fetch(
                """
                SELECT id, name, slug, genres FROM artists
                WHERE genres && $1::text[]
                ORDER BY id
                """,
                list(genres),
            )
        else:
            rows = await self._db.fetch(
                "SELECT id, name, slug, genres FROM artists ORDER BY id"
            )
        return [_record_to_artist(row) for row in rows]

    async def get_snapshots(
        self,
        artist_ids: Sequence[str],
        since: datetime,
        until: datetime,
    ) -> dict[str, list[ArtistSnapshot]]:
        """Batched window read of streaming snapshots.

        Returns:
            artist_id -> snapshots ordered by snapshot_date, then insertion
            order. Artists without in-window snapshots are absent.
        """
        if not artist_ids:
            return {}

        rows = await self._db.fetch(
            """
            SELECT artist_id, snapshot_date, popularity, followers
            FROM artist_snapshots
            WHERE artist_id = ANY($1::text[])
              AND snapshot_date >= $2
              AND snapshot_date <= $3
            ORDER BY artist_id, snapshot_date, id
            """,
            list(artist_ids),
            since,
            until,
        )

        result: dict[str, list[ArtistSnapshot]] = {}
        for row in rows:
            result.setdefault(row["artist_id"], []).append(
                ArtistSnapshot(
                    artist_id=row["artist_id"],
                    snapshot_date=row["snapshot_date"],
                    popularity=row["popularity"],
                    followers=row["followers"],
                )
            )
        return result

    async def get_social_snapshots(
        self,
        artist_ids: Sequence[str],
        since: datetime,
        until: datetime,
    ) -> dict[str, list[SocialSnapshot]]:
        """Batched window read of social follower snapshots for all platforms."""
        if not artist_ids:
            return {}

        rows = await self._db.fetch(
            """
            SELECT s.artist_id, s.platform, ss.artist_social_id,
                   ss.snapshot_date, ss.follower_count
            FROM social_snapshots ss
            JOIN artist_socials s ON s.id = ss.artist_social_id
            WHERE s.artist_id = ANY($1::text[])
              AND ss.snapshot_date >= $2
              AND ss.snapshot_date <= $3
            ORDER BY s.artist_id, s.platform, ss.snapshot_date, ss.id
            """,
            list(artist_ids),
            since,
            until,
        )

        result: dict[str, list[SocialSnapshot]] = {}
        for row in rows:
            result.setdefault(row["artist_id"], []).append(
                SocialSnapshot(
                    artist_id=row["artist_id"],
                    platform=row["platform"],
                    snapshot_date=row["snapshot_date"],
                    follower_count=row["follower_count"],
                    artist_social_id=str(row["artist_social_id"]),
                )
            )
        return result
