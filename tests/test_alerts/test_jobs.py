"""Tests for the check_alerts batch job and service wiring."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import structlog

from ar_momentum.alerts.jobs import build_alert_service, check_alerts
from ar_momentum.alerts.schemas import SweepResult
from ar_momentum.alerts.service import AlertService


class TestCheckAlerts:

    @pytest.mark.asyncio
    async def test_binds_sweep_id_during_run(self):
        seen = {}

        async def sweep(cooldown=None):
            seen.update(structlog.contextvars.get_contextvars())
            return SweepResult(checked=2, triggered=1)

        service = AsyncMock(spec=AlertService)
        service.evaluate_score_alerts.side_effect = sweep

        result = await check_alerts(service, cooldown=timedelta(hours=6))

        assert result.triggered == 1
        assert len(seen["sweep_id"]) == 12
        assert structlog.contextvars.get_contextvars() == {}
        service.evaluate_score_alerts.assert_awaited_once_with(cooldown=timedelta(hours=6))

    @pytest.mark.asyncio
    async def test_failure_propagates_and_clears_context(self):
        service = AsyncMock(spec=AlertService)
        service.evaluate_score_alerts.side_effect = ConnectionError("db down")

        with pytest.raises(ConnectionError):
            await check_alerts(service)

        assert structlog.contextvars.get_contextvars() == {}


class TestBuildAlertService:

    def test_wires_components(self, test_settings):
        service = build_alert_service(AsyncMock(), settings=test_settings)
        assert isinstance(service, AlertService)
        assert service._frontend_url == "https://arclub.test"
