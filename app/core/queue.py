"""Delayed-job queue connection used for appointment reminders."""

import asyncio
import time
from contextlib import suppress
from datetime import timedelta

import structlog
from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.constants import job_key_prefix
from redis.exceptions import RedisError

from app.config import Settings
from app.core.exceptions import DependencyException
from app.core.resilience import guarded_call

logger = structlog.get_logger(__name__)

QUEUE_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError)


def get_redis_settings(redis_url: str) -> RedisSettings:
    """Build arq Redis settings from a connection URL."""
    redis_settings = RedisSettings.from_dsn(redis_url)
    redis_settings.conn_timeout = 5
    redis_settings.conn_retries = 1
    return redis_settings


class ReminderQueue:
    """
    Process-wide handle on the reminder queue.

    Created once at application startup and closed on shutdown; request
    handlers receive it through dependency injection.
    """

    def __init__(self, pool: ArqRedis, queue_name: str, timeout: float):
        """Wrap an open arq pool."""
        self.pool = pool
        self.queue_name = queue_name
        self.timeout = timeout

    @classmethod
    async def connect(cls, settings: Settings) -> "ReminderQueue":
        """
        Open the queue connection.

        Raises:
            DependencyException: If Redis cannot be reached in time
        """
        pool = await guarded_call(
            create_pool(
                get_redis_settings(settings.redis_url),
                default_queue_name=settings.reminder_queue_name,
            ),
            dependency="queue",
            timeout=settings.external_call_timeout_seconds * 3,
            errors=QUEUE_ERRORS,
        )
        logger.info("reminder_queue_connected", queue_name=settings.reminder_queue_name)
        return cls(pool, settings.reminder_queue_name, settings.external_call_timeout_seconds)

    async def enqueue(
        self,
        function: str,
        job_id: str,
        delay: timedelta,
        **payload: str,
    ) -> bool:
        """
        Enqueue a deferred job under a fixed id.

        Returns:
            True if a job was enqueued, False if one with this id already exists
        """
        job = await guarded_call(
            self.pool.enqueue_job(
                function,
                _job_id=job_id,
                _queue_name=self.queue_name,
                _defer_by=delay,
                **payload,
            ),
            dependency="queue",
            timeout=self.timeout,
            errors=QUEUE_ERRORS,
        )
        return job is not None

    async def cancel(self, job_id: str) -> bool:
        """
        Remove a job that has not started yet.

        Returns:
            True if a pending job was removed
        """
        removed = await guarded_call(
            self.pool.zrem(self.queue_name, job_id),
            dependency="queue",
            timeout=self.timeout,
            errors=QUEUE_ERRORS,
        )
        await guarded_call(
            self.pool.delete(job_key_prefix + job_id),
            dependency="queue",
            timeout=self.timeout,
            errors=QUEUE_ERRORS,
        )
        return bool(removed)

    async def ping(self) -> bool:
        """Check if the queue connection is healthy."""
        try:
            await guarded_call(
                self.pool.ping(),
                dependency="queue",
                timeout=self.timeout,
                errors=QUEUE_ERRORS,
            )
            return True
        except DependencyException:
            return False

    async def close(self) -> None:
        """Close the queue connection."""
        await self.pool.aclose()
        logger.info("reminder_queue_closed")


class ReminderQueueConnector:
    """
    Owner of the process-wide reminder queue.

    If the queue cannot be reached, ``get`` keeps returning None and starts
    a background reconnect at most once per reconnect interval. Requests never
    wait on a reconnect.
    """

    def __init__(self, config: Settings):
        """Initialize without connecting."""
        self.config = config
        self.queue: ReminderQueue | None = None
        self.reconnect_task: asyncio.Task[None] | None = None
        self._next_attempt = 0.0

    async def connect(self) -> ReminderQueue | None:
        """
        Connect now.

        Returns:
            The queue, or None if Redis could not be reached
        """
        try:
            self.queue = await ReminderQueue.connect(self.config)
        except DependencyException as e:
            logger.error("reminder_queue_connection_failed", error=e.message)
            self._next_attempt = time.monotonic() + self.config.queue_reconnect_interval_seconds
        return self.queue

    def get(self) -> ReminderQueue | None:
        """Current queue; schedules a reconnect when there is none."""
        if (
            self.queue is None
            and self.reconnect_task is None
            and time.monotonic() >= self._next_attempt
        ):
            self.reconnect_task = asyncio.create_task(self._reconnect())
        return self.queue

    async def _reconnect(self) -> None:
        try:
            if await self.connect() is not None:
                logger.info("reminder_queue_reconnected")
        finally:
            self.reconnect_task = None

    async def close(self) -> None:
        """Stop reconnecting and close the queue."""
        task = self.reconnect_task
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if self.queue is not None:
            await self.queue.close()
            self.queue = None
