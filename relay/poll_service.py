"""
Poll service for schedule change detection and broadcasting.

This module provides:
- Interval polling with APScheduler
- Manual (user-triggered) refresh cycles
- Serialization of overlapping cycles
- Throttled failure notifications
"""

import asyncio
import uuid
from datetime import datetime
from typing import Dict, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from fetchers.base import ScheduleFetcher
from relay.alerting import ErrorThrottle
from relay.change_detector import ChangeDetector
from relay.dispatcher import BroadcastDispatcher
from relay.messages import check_error_text
from relay.models import ChangeOutcome, CycleResult, CycleTrigger, FetchResult
from relay.schedule_state import ScheduleState
from relay.subscribers import SubscriberStore
from relay.transport import MessagingTransport
from utilities.config import RelayConfig
from utilities.logger import CycleLogger

logger = structlog.get_logger(__name__)

POLL_JOB_ID = "schedule_poll"


class PollService:
    """Runs fetch-detect-broadcast cycles on a timer and on demand."""

    def __init__(
        self,
        config: RelayConfig,
        fetcher: ScheduleFetcher,
        store: SubscriberStore,
        transport: MessagingTransport,
        state: Optional[ScheduleState] = None
    ):
        """
        Initialize poll service.

        Args:
            config: Relay configuration
            fetcher: Schedule fetch strategy
            store: Subscriber store
            transport: Messaging transport for broadcasts
            state: Last-known schedule holder (in-memory if omitted)
        """
        self.config = config
        self.fetcher = fetcher
        self.store = store
        self.scheduler = AsyncIOScheduler()
        self.logger = logger.bind(component="poll_service")

        self.state = state or ScheduleState()
        self.change_detector = ChangeDetector(self.state, normalize_references=config.normalize_references)
        self.dispatcher = BroadcastDispatcher(store, transport)
        self.error_throttle = ErrorThrottle(cooldown_minutes=config.error_cooldown_minutes)

        self._cycle_lock = asyncio.Lock()

        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_error_listener(event):
            self.logger.error(
                "Poll job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        def job_missed_listener(event):
            self.logger.warning("Poll job still running, tick skipped", job_id=event.job_id)

        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_missed_listener, EVENT_JOB_MAX_INSTANCES)

    def start(self) -> None:
        """Register the interval job and start the scheduler (needs a running loop)."""
        self.scheduler.add_job(
            func=self._poll_job,
            trigger='interval',
            seconds=self.config.check_interval_seconds,
            id=POLL_JOB_ID,
            name='Schedule Poll',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()

        self.logger.info(
            "Poll service started",
            target_url=self.config.target_url,
            interval_seconds=self.config.check_interval_seconds,
            subscribers=len(self.store)
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.logger.info("Poll service stopped")
        except Exception as e:
            self.logger.error("Error stopping poll service", error=str(e))

    async def _poll_job(self) -> Dict:
        result = await self.run_cycle(CycleTrigger.TIMER)
        return result.model_dump(mode="json")

    async def run_cycle(self, trigger: CycleTrigger = CycleTrigger.TIMER) -> CycleResult:
        """
        Run one background cycle: fetch, detect, broadcast on change.

        Failures are reported in the result and, throttled, to subscribers.
        """
        async with self._cycle_lock:
            cycle_id = uuid.uuid4().hex
            cycle_logger = self._cycle_logger(cycle_id, trigger)
            start_time = datetime.now()
            cycle_logger.log_cycle_start(self.config.target_url)

            result = await self._fetch()
            outcome = self.change_detector.evaluate(result)
            cycle = self._new_result(cycle_id, trigger, outcome, result, start_time)

            try:
                if outcome == ChangeOutcome.CHANGED:
                    cycle.broadcast = await self.dispatcher.broadcast_schedule(result.reference)
                elif outcome == ChangeOutcome.FAILED:
                    cycle_logger.log_error(result.error, url=self.config.target_url)
                    cycle.error_notified = await self._notify_failure(result.error)
            except Exception as e:
                cycle_logger.log_error(f"Broadcast failed: {e}")

            cycle.duration_seconds = (datetime.now() - start_time).total_seconds()
            cycle_logger.log_cycle_complete(outcome.value, cycle.duration_seconds, result.reference)
            return cycle

    async def refresh_for(
        self,
        chat_id: int,
        trigger: CycleTrigger = CycleTrigger.MANUAL,
        note: Optional[str] = None
    ) -> CycleResult:
        """
        Run a cycle on behalf of a requester and send them the current schedule.

        A detected change is broadcast to every other subscriber. Failures are
        returned for an inline reply and do not notify subscribers.
        """
        async with self._cycle_lock:
            cycle_id = uuid.uuid4().hex
            cycle_logger = self._cycle_logger(cycle_id, trigger).bind_context(chat_id=chat_id)
            start_time = datetime.now()
            cycle_logger.log_cycle_start(self.config.target_url)

            result = await self._fetch()
            outcome = self.change_detector.evaluate(result)
            cycle = self._new_result(cycle_id, trigger, outcome, result, start_time)

            if outcome == ChangeOutcome.FAILED:
                cycle_logger.log_error(result.error, url=self.config.target_url)
            else:
                if outcome == ChangeOutcome.CHANGED:
                    cycle.broadcast = await self.dispatcher.broadcast_schedule(result.reference, exclude=[chat_id])
                cycle.requester_status = await self.dispatcher.deliver_schedule(chat_id, result.reference, note)
                cycle_logger.log_delivery(chat_id, cycle.requester_status.value)

            cycle.duration_seconds = (datetime.now() - start_time).total_seconds()
            cycle_logger.log_cycle_complete(outcome.value, cycle.duration_seconds, result.reference)
            return cycle

    async def _fetch(self) -> FetchResult:
        try:
            return await self.fetcher.fetch(self.config.target_url)
        except Exception as e:
            self.logger.error("Fetcher raised unexpectedly", error=str(e))
            return FetchResult.failure(str(e) or e.__class__.__name__)

    async def _notify_failure(self, cause: str) -> bool:
        if not self.config.notify_subscribers_on_error:
            return False
        if not self.error_throttle.should_notify():
            return False
        await self.dispatcher.broadcast_text(check_error_text(cause))
        return True

    def _cycle_logger(self, cycle_id: str, trigger: CycleTrigger) -> CycleLogger:
        return CycleLogger("poll_cycle").bind_context(
            cycle_id=cycle_id,
            trigger=trigger.value
        )

    def _new_result(
        self,
        cycle_id: str,
        trigger: CycleTrigger,
        outcome: ChangeOutcome,
        result: FetchResult,
        start_time: datetime
    ) -> CycleResult:
        return CycleResult(
            cycle_id=cycle_id,
            trigger=trigger,
            outcome=outcome,
            reference=result.reference,
            error=result.error,
            started_at=start_time
        )

    def get_status(self) -> Dict:
        """Get current poll service status."""
        job = self.scheduler.get_job(POLL_JOB_ID)
        next_run = getattr(job, "next_run_time", None) if job else None
        return {
            'subscribers': len(self.store),
            'last_reference': self.state.reference,
            'last_updated_at': self.state.updated_at,
            'target_url': self.config.target_url,
            'interval_seconds': self.config.check_interval_seconds,
            'running': self.scheduler.running,
            'next_run_time': next_run.isoformat() if next_run else None
        }
