"""Batch job for the periodic momentum alert sweep.

Runs as an offline batch process triggered by an external scheduler:
``0 * * * * ar-momentum check-alerts``. Every log line of one sweep is
tagged with its ``sweep_id``.
"""

import time
import uuid
from datetime import timedelta

from ar_momentum.alerts.config import AlertConfig
from ar_momentum.alerts.dispatcher import NotificationConfig, build_dispatcher
from ar_momentum.alerts.repository import NotificationRepository, SubscriptionRepository
from ar_momentum.alerts.schemas import SweepResult
from ar_momentum.alerts.service import AlertService
from ar_momentum.config.settings import Settings, get_settings
from ar_momentum.momentum.config import MomentumConfig
from ar_momentum.momentum.repository import SnapshotRepository
from ar_momentum.momentum.scorer import MomentumScorer
from ar_momentum.observability.logging import bind_context, clear_context, get_logger
from ar_momentum.storage.database import Database

logger = get_logger(__name__)


def build_alert_service(
    database: Database,
    settings: Settings | None = None,
    alert_config: AlertConfig | None = None,
    momentum_config: MomentumConfig | None = None,
    notification_config: NotificationConfig | None = None,
) -> AlertService:
    """Wire repositories, scorer and dispatcher onto one database pool."""
    settings = settings or get_settings()
    scorer = MomentumScorer(
        config=momentum_config or MomentumConfig(),
        snapshot_repo=SnapshotRepository(database),
    )
    dispatcher = build_dispatcher(
        settings,
        NotificationRepository(database),
        notification_config,
    )
    return AlertService(
        config=alert_config or AlertConfig(),
        subscription_repo=SubscriptionRepository(database),
        dispatcher=dispatcher,
        scorer=scorer,
        frontend_url=settings.frontend_url,
    )


async def check_alerts(
    service: AlertService,
    cooldown: timedelta | None = None,
) -> SweepResult:
    """Run one momentum alert sweep.

    Raises:
        Exception: Whatever aborted the sweep as a whole (e.g. the
            subscription list could not be read), after logging it.
    """
    sweep_id = uuid.uuid4().hex[:12]
    bind_context(sweep_id=sweep_id)
    start = time.perf_counter()
    logger.info("Starting alert check job")

    try:
        result = await service.evaluate_score_alerts(cooldown=cooldown)
    except Exception as e:
        logger.error(
            "Alert check job failed",
            error=str(e),
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        raise
    else:
        logger.info(
            "Alert check job completed",
            checked=result.checked,
            triggered=result.triggered,
            failed=result.failed,
            duration_ms=result.duration_ms,
        )
        return result
    finally:
        clear_context()
