"""Bounded status polling for provider generation jobs."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..exceptions import JobCancelled, ProviderAuthError, ProviderRequestError

logger = logging.getLogger(__name__)

QUEUED = 'queued'
DREAMING = 'dreaming'
COMPLETED = 'completed'
FAILED = 'failed'

SUCCEEDED = 'succeeded'
TIMEOUT = 'timeout'

DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_ATTEMPTS = 60


@dataclass(frozen=True)
class PollResult:
    status: str
    video_url: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


class JobPoller:
    """Waits for a provider job to reach a terminal state.

    Sleeps ``interval`` before every status query and gives up with a
    ``timeout`` result after exactly ``max_attempts`` queries. Transient
    query errors are logged and retried on the next tick; auth errors
    propagate.
    """

    def __init__(self, interval: float = DEFAULT_INTERVAL_SECONDS, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    def await_terminal(self, provider, provider_job_id: str, on_attempt=None, should_cancel=None) -> PollResult:
        for attempt in range(1, self.max_attempts + 1):
            if should_cancel and should_cancel():
                raise JobCancelled(f'Cancelled while waiting for {provider_job_id}')
            self._sleep(self.interval)

            state = None
            try:
                status = provider.get_status(provider_job_id)
                state = status.state
            except ProviderAuthError:
                raise
            except (ProviderRequestError, httpx.HTTPError) as e:
                logger.warning('Status check %s/%s for %s failed: %s', attempt, self.max_attempts, provider_job_id, e)
                status = None

            if on_attempt:
                on_attempt(attempt, self.max_attempts, state)
            if status is None:
                continue

            logger.debug('Poll %s/%s for %s: %s', attempt, self.max_attempts, provider_job_id, state)
            if state == COMPLETED:
                if status.video_url:
                    return PollResult(SUCCEEDED, video_url=status.video_url, attempts=attempt)
                logger.warning('Generation %s completed without a video URL', provider_job_id)
                return PollResult(FAILED, error='Generation completed but no video URL was returned', attempts=attempt)
            if state == FAILED:
                reason = status.failure_reason or 'Unknown error'
                return PollResult(FAILED, error=f'Generation failed: {reason}', attempts=attempt)

        logger.error('Generation %s timed out after %s attempts', provider_job_id, self.max_attempts)
        return PollResult(TIMEOUT, error=f'Generation timed out after {self.max_attempts} attempts',
                          attempts=self.max_attempts)
