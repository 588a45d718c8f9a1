"""Tests for the ar-momentum CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from ar_momentum.alerts.schemas import SweepResult
from ar_momentum.cli import main
from ar_momentum.momentum.schemas import MomentumRecord


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_database():
    """Patch Database so commands never open a real pool."""
    db = AsyncMock()
    db.__aenter__.return_value = db
    db.__aexit__.return_value = False
    with patch("ar_momentum.storage.database.Database", return_value=db):
        yield db


def _record(artist_id="a1", score=1.5):
    return MomentumRecord(
        artist_id=artist_id,
        name="Nova",
        genres=("indie",),
        current_popularity=60,
        current_followers=5000,
        delta_popularity=6.0,
        delta_followers_pct=0.1,
        delta_instagram_pct=0.0,
        delta_tiktok_pct=0.0,
        delta_youtube_pct=0.0,
        momentum_score=score,
        sparkline=(54, 60),
        mode="cohort",
        cohort_size=2,
    )


class TestLeaderboard:

    def test_json_output(self, runner, mock_database):
        scorer = MagicMock()
        scorer.compute_leaderboard = AsyncMock(return_value=[_record()])

        with patch("ar_momentum.momentum.scorer.MomentumScorer", return_value=scorer):
            result = runner.invoke(main, ["leaderboard", "-g", "indie", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data[0]["artist_id"] == "a1"
        assert scorer.compute_leaderboard.call_args.kwargs["genres"] == ("indie",)

    def test_table_output(self, runner, mock_database):
        scorer = MagicMock()
        scorer.compute_leaderboard = AsyncMock(return_value=[_record()])

        with patch("ar_momentum.momentum.scorer.MomentumScorer", return_value=scorer):
            result = runner.invoke(main, ["leaderboard", "--limit", "5"])

        assert result.exit_code == 0
        assert "Nova" in result.output
        assert "cohort size: 2" in result.output

    def test_bad_limit(self, runner, mock_database):
        scorer = MagicMock()
        scorer.compute_leaderboard = AsyncMock(side_effect=ValueError("limit must be >= 1, got 0"))

        with patch("ar_momentum.momentum.scorer.MomentumScorer", return_value=scorer):
            result = runner.invoke(main, ["leaderboard", "--limit", "0"])

        assert result.exit_code != 0
        assert "limit must be >= 1" in result.output


class TestArtistMomentum:

    def test_not_found(self, runner, mock_database):
        scorer = MagicMock()
        scorer.compute_entity_momentum = AsyncMock(return_value=None)

        with patch("ar_momentum.momentum.scorer.MomentumScorer", return_value=scorer):
            result = runner.invoke(main, ["artist-momentum", "missing"])

        assert result.exit_code == 1
        assert "No momentum available" in result.output


class TestCheckAlerts:

    def test_prints_summary(self, runner, mock_database):
        with patch("ar_momentum.alerts.jobs.build_alert_service"), patch(
            "ar_momentum.alerts.jobs.check_alerts",
            AsyncMock(return_value=SweepResult(checked=3, triggered=1, duration_ms=42)),
        ) as mock_check:
            result = runner.invoke(main, ["check-alerts", "--cooldown-hours", "24"])

        assert result.exit_code == 0, result.output
        assert "Triggered: 1" in result.output
        assert mock_check.call_args.kwargs["cooldown"].total_seconds() == 24 * 3600

    def test_default_cooldown_from_config(self, runner, mock_database):
        with patch("ar_momentum.alerts.jobs.build_alert_service"), patch(
            "ar_momentum.alerts.jobs.check_alerts",
            AsyncMock(return_value=SweepResult(checked=1)),
        ) as mock_check:
            result = runner.invoke(main, ["check-alerts"])

        assert result.exit_code == 0, result.output
        assert mock_check.call_args.kwargs["cooldown"] is None

    def test_zero_cooldown_rejected(self, runner, mock_database):
        with patch("ar_momentum.alerts.jobs.build_alert_service"), patch(
            "ar_momentum.alerts.jobs.check_alerts", AsyncMock(),
        ) as mock_check:
            result = runner.invoke(main, ["check-alerts", "--cooldown-hours", "0"])

        assert result.exit_code == 2
        mock_check.assert_not_called()

    def test_failures_exit_nonzero(self, runner, mock_database):
        with patch("ar_momentum.alerts.jobs.build_alert_service"), patch(
            "ar_momentum.alerts.jobs.check_alerts",
            AsyncMock(return_value=SweepResult(checked=3, failed=2)),
        ):
            result = runner.invoke(main, ["check-alerts"])

        assert result.exit_code == 1
