"""
Renewal Reminder Scheduling

For each lead time configured on a subscription, the scheduler computes
the reminder instant (renewal minus the lead time, at the subscription's
notification time) and hands it to the notification sink.

GUARANTEES:
- At most one pending reminder per (subscription, lead time): every call
  cancels all keys of the subscription before scheduling the new set
- Never schedules a reminder at or before `as_of`
- A rejected reminder is reported on its own; the remaining lead times
  are still scheduled
- Inactive subscriptions and missing permission are no-ops, not errors
"""

from datetime import datetime, time, timedelta
from typing import Optional
from uuid import UUID

from subscription_manager.audit import AuditLogger
from subscription_manager.config import NotificationSettings, get_settings
from subscription_manager.core.renewal import RenewalCalculator
from subscription_manager.models.subscription import (
    FailedReminder,
    NotificationLeadTime,
    ScheduledReminder,
    ScheduleResult,
    ScheduleStatus,
    SkippedReminder,
    Subscription,
    as_utc,
    reminder_key,
)
from subscription_manager.services.notifications import (
    NotificationError,
    NotificationPermission,
    NotificationSinkInterface,
)


class NotificationScheduler:
    """
    Schedules renewal reminders for one subscription at a time.

    Subscriptions never share keys, so different subscriptions can be
    scheduled concurrently against the same sink.
    """

    def __init__(
        self,
        sink: NotificationSinkInterface,
        calculator: Optional[RenewalCalculator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[NotificationSettings] = None,
    ):
        self._sink = sink
        self._calculator = calculator or RenewalCalculator()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().notification

    def _notification_time(self, subscription: Subscription) -> time:
        if subscription.notification_time is not None:
            return subscription.notification_time
        return time(self._settings.default_hour, self._settings.default_minute)

    @staticmethod
    def fire_instant(
        renewal: datetime,
        lead_time: NotificationLeadTime,
        notification_time: time,
    ) -> datetime:
        """Renewal minus the lead time, at the given wall-clock time."""
        day = renewal - timedelta(days=lead_time.days)
        return day.replace(
            hour=notification_time.hour,
            minute=notification_time.minute,
            second=0,
            microsecond=0,
        )

    def compose_body(self, subscription: Subscription, lead_time: NotificationLeadTime) -> str:
        return (
            f"{subscription.service_name} renews {lead_time.timing_text}. "
            f"Amount: {subscription.amount} {subscription.currency}"
        )

    def plan(self, subscription: Subscription, as_of: datetime) -> ScheduleResult:
        """
        Compute the reminders `schedule` would hand to the sink.

        Pure: touches neither the sink nor the audit log.

        Raises:
            RenewalCalculationError: If the renewal date cannot be computed
        """
        as_of = as_utc(as_of)
        if not subscription.is_active:
            return ScheduleResult(
                subscription_id=subscription.id,
                status=ScheduleStatus.INACTIVE,
            )

        renewal = self._calculator.next_renewal_for(subscription, as_of)
        notification_time = self._notification_time(subscription)

        reminders = []
        skipped = []
        for lead_time in subscription.notification_lead_times:
            candidate = self.fire_instant(renewal, lead_time, notification_time)
            if candidate <= as_of:
                skipped.append(SkippedReminder(
                    subscription_id=subscription.id,
                    lead_time=lead_time,
                    candidate_at=candidate,
                ))
                continue
            reminders.append(ScheduledReminder(
                subscription_id=subscription.id,
                lead_time=lead_time,
                fire_at=candidate,
            ))

        return ScheduleResult(
            subscription_id=subscription.id,
            status=ScheduleStatus.SCHEDULED,
            renewal_at=renewal,
            reminders=reminders,
            skipped=skipped,
        )

    async def schedule(
        self,
        subscription: Subscription,
        as_of: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> ScheduleResult:
        """
        Replace the pending reminders of a subscription.

        Returns:
            ScheduleResult whose `reminders` are the ones the sink accepted

        Raises:
            RenewalCalculationError: If the renewal date cannot be computed.
                Nothing is cancelled in that case.
        """
        if not subscription.is_active:
            return ScheduleResult(
                subscription_id=subscription.id,
                status=ScheduleStatus.INACTIVE,
            )

        permission = await self._sink.permission_status()
        if permission != NotificationPermission.AUTHORIZED:
            if self._audit_logger:
                await self._audit_logger.log_permission_missing(
                    status=permission.value,
                    subscription_id=subscription.id,
                    correlation_id=correlation_id,
                )
            return ScheduleResult(
                subscription_id=subscription.id,
                status=ScheduleStatus.PERMISSION_MISSING,
            )

        planned = self.plan(subscription, as_of)

        await self.cancel_all(subscription.id, correlation_id=correlation_id)

        if self._audit_logger:
            for skipped in planned.skipped:
                await self._audit_logger.log_reminder_skipped(
                    subscription_id=subscription.id,
                    service_name=subscription.service_name,
                    lead_time=skipped.lead_time.value,
                    candidate_at=skipped.candidate_at,
                    correlation_id=correlation_id,
                )

        accepted = []
        failures = []
        for reminder in planned.reminders:
            try:
                await self._sink.schedule(
                    key=reminder.key,
                    fire_at=reminder.fire_at,
                    title=self._settings.title,
                    body=self.compose_body(subscription, reminder.lead_time),
                )
            except NotificationError as e:
                failures.append(FailedReminder(reminder=reminder, error_message=str(e)))
                if self._audit_logger:
                    await self._audit_logger.log_reminder_failed(
                        subscription_id=subscription.id,
                        service_name=subscription.service_name,
                        key=reminder.key,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                continue

            accepted.append(reminder)
            if self._audit_logger:
                await self._audit_logger.log_reminder_scheduled(
                    subscription_id=subscription.id,
                    service_name=subscription.service_name,
                    key=reminder.key,
                    lead_time=reminder.lead_time.value,
                    fire_at=reminder.fire_at,
                    correlation_id=correlation_id,
                )

        return planned.model_copy(update={
            "reminders": accepted,
            "failures": failures,
        })

    async def cancel_all(
        self,
        subscription_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Cancel every reminder key a subscription could own.

        All lead times are cancelled, not only the configured ones, so a
        lead time removed from the subscription cannot leave a stale
        reminder behind.

        Returns:
            The cancelled keys
        """
        keys = [reminder_key(subscription_id, lead_time) for lead_time in NotificationLeadTime]
        await self._sink.cancel(keys)

        if self._audit_logger:
            await self._audit_logger.log_reminders_cancelled(
                subscription_id=subscription_id,
                keys=keys,
                correlation_id=correlation_id,
            )

        return keys

    async def permission_status(self) -> NotificationPermission:
        return await self._sink.permission_status()

    async def request_permission(self) -> NotificationPermission:
        return await self._sink.request_permission()
