"""
Main Orchestrator for Subscription Manager

This module ties together all the components and defines the
end-to-end flows for:
1. Renewal reminders (subscription -> renewal date -> reminders -> sink)
2. Spending summary (subscriptions -> converted amounts -> totals)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The core never reaches for global state; every collaborator is injected
- One subscription failing never stops a refresh of the others
- Every step is audited under one correlation ID per action
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog

from subscription_manager.analytics import SpendingAnalyzer
from subscription_manager.audit import AuditLogger, create_correlation_id
from subscription_manager.config import Settings, get_settings
from subscription_manager.core import (
    ExchangeRateCache,
    NotificationScheduler,
    RenewalCalculationError,
)
from subscription_manager.models.spending import SpendingSummary
from subscription_manager.models.subscription import ScheduleResult, ScheduleStatus
from subscription_manager.services.exchange_rates import FxRatesAPIClient
from subscription_manager.services.notifications import (
    InProcessNotificationCenter,
    NotificationPermission,
)
from subscription_manager.services.storage import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    InMemorySubscriptionStore,
    JsonLinesAuditStorage,
    NotFoundError,
    SubscriptionStoreInterface,
)


logger = structlog.get_logger(__name__)


class RenewalReminderFlow:
    """
    Orchestrates reminder scheduling against the subscription store.

    Flow:
    1. Load → Read subscriptions from the store
    2. Check → Notification permission (once per refresh)
    3. Schedule → Replace each subscription's reminders
    4. Report → Audit the outcome
    """

    def __init__(
        self,
        scheduler: NotificationScheduler,
        subscription_store: SubscriptionStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._scheduler = scheduler
        self._subscription_store = subscription_store
        self._audit_logger = audit_logger

    async def schedule_subscription(
        self,
        subscription_id: UUID,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ScheduleResult:
        """
        (Re)schedule the reminders of one subscription, e.g. after an edit.

        Raises:
            NotFoundError: If the store has no such subscription
            RenewalCalculationError: If its renewal date cannot be computed
        """
        correlation_id = correlation_id or create_correlation_id()
        as_of = as_of or datetime.now(timezone.utc)

        subscription = await self._subscription_store.get_subscription(subscription_id)
        if subscription is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")

        return await self._scheduler.schedule(subscription, as_of, correlation_id=correlation_id)

    async def refresh_all_notifications(
        self,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[ScheduleResult]:
        """
        Re-schedule every active subscription.

        Without permission nothing is touched and an empty list is
        returned. A subscription whose renewal cannot be computed is
        logged and skipped.

        Returns:
            One result per subscription that was scheduled
        """
        correlation_id = correlation_id or create_correlation_id()
        as_of = as_of or datetime.now(timezone.utc)

        permission = await self._scheduler.permission_status()
        if permission != NotificationPermission.AUTHORIZED:
            if self._audit_logger:
                await self._audit_logger.log_permission_missing(
                    status=permission.value,
                    correlation_id=correlation_id,
                )
            return []

        subscriptions = await self._subscription_store.list_subscriptions(active_only=True)

        results = []
        for subscription in subscriptions:
            try:
                result = await self._scheduler.schedule(
                    subscription,
                    as_of,
                    correlation_id=correlation_id,
                )
            except RenewalCalculationError as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="renewal_calculation",
                        error_message=str(e),
                        details={"subscription_id": str(subscription.id)},
                        correlation_id=correlation_id,
                    )
                continue
            results.append(result)

        if self._audit_logger:
            await self._audit_logger.log_notifications_refreshed(
                subscription_count=sum(
                    1 for r in results if r.status == ScheduleStatus.SCHEDULED
                ),
                reminder_count=sum(r.scheduled_count for r in results),
                failure_count=sum(len(r.failures) for r in results),
                correlation_id=correlation_id,
            )

        return results

    async def cancel_subscription_reminders(
        self,
        subscription_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Remove every pending reminder of a subscription, e.g. on delete.

        The subscription does not need to exist in the store anymore.
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._scheduler.cancel_all(subscription_id, correlation_id=correlation_id)

    async def request_permission(self) -> NotificationPermission:
        return await self._scheduler.request_permission()


class SpendingFlow:
    """Summarises spending over the subscriptions in the store."""

    def __init__(
        self,
        analyzer: SpendingAnalyzer,
        subscription_store: SubscriptionStoreInterface,
    ):
        self._analyzer = analyzer
        self._subscription_store = subscription_store

    async def summary(
        self,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingSummary:
        correlation_id = correlation_id or create_correlation_id()
        subscriptions = await self._subscription_store.list_subscriptions(active_only=True)
        summary = await self._analyzer.summarize(
            subscriptions,
            as_of=as_of,
            correlation_id=correlation_id,
        )
        if not summary.is_complete:
            logger.warning(
                "spending_summary_incomplete",
                unconverted_currencies=summary.unconverted_currencies,
                correlation_id=str(correlation_id),
            )
        return summary


def create_app_components(
    subscription_store: Optional[SubscriptionStoreInterface] = None,
    use_storage: bool = True,
    settings: Optional[Settings] = None,
) -> tuple[RenewalReminderFlow, SpendingFlow, ExchangeRateCache]:
    """
    Factory function to create all application components.

    Args:
        subscription_store: Source of subscriptions (empty in-memory store if None)
        use_storage: Whether to use the file-backed rate cache and audit log.
                    Set to False for testing without touching the disk.
        settings: Configuration (loaded from env if None)

    Returns:
        (reminder_flow, spending_flow, rate_cache)
    """
    settings = settings or get_settings()
    logging.getLogger("subscription_manager").setLevel(settings.app.log_level)
    subscription_store = subscription_store or InMemorySubscriptionStore()

    if use_storage:
        key_value_store = FileKeyValueStore(settings.storage.data_path)
        audit_logger = AuditLogger(JsonLinesAuditStorage(settings.storage.audit_log_path))
    else:
        key_value_store = InMemoryKeyValueStore()
        audit_logger = AuditLogger()  # Local-only logging

    rate_cache = ExchangeRateCache(
        source=FxRatesAPIClient(settings.exchange_rate),
        store=key_value_store,
        audit_logger=audit_logger,
        settings=settings.exchange_rate,
    )

    scheduler = NotificationScheduler(
        sink=InProcessNotificationCenter(),
        audit_logger=audit_logger,
        settings=settings.notification,
    )

    reminder_flow = RenewalReminderFlow(
        scheduler=scheduler,
        subscription_store=subscription_store,
        audit_logger=audit_logger,
    )

    spending_flow = SpendingFlow(
        analyzer=SpendingAnalyzer(rate_cache, settings.app),
        subscription_store=subscription_store,
    )

    return reminder_flow, spending_flow, rate_cache
