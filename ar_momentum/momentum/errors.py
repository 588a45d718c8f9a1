"""Exception taxonomy for momentum scoring.

Per-artist errors (``InsufficientDataError``, ``InvalidInputError``) are
isolated by the scorer: the artist is excluded and the run continues.
``DataSourceError`` means the cohort itself could not be read and is
surfaced to the caller.
"""


class MomentumError(Exception):
    """Base class for momentum scoring errors."""


class InsufficientDataError(MomentumError):
    """Fewer than two snapshots exist in the scoring window.

    This is the expected "no momentum yet" state for newly tracked
    artists, not a failure.
    """

    def __init__(self, artist_id: str, sample_count: int) -> None:
        self.artist_id = artist_id
        self.sample_count = sample_count
        super().__init__(
            f"Artist {artist_id!r} has {sample_count} snapshot(s) in window, need 2"
        )


class InvalidInputError(MomentumError):
    """A snapshot carries a malformed timestamp or metric value."""

    def __init__(self, artist_id: str, reason: str) -> None:
        self.artist_id = artist_id
        self.reason = reason
        super().__init__(f"Invalid snapshot data for artist {artist_id!r}: {reason}")


class DataSourceError(MomentumError):
    """The cohort membership read failed, so no ranking can be produced."""
