"""Tests for bounded provider polling."""

import httpx
import pytest

from story_video.exceptions import JobCancelled, ProviderAuthError, ProviderRequestError
from story_video.services.polling import FAILED, SUCCEEDED, TIMEOUT, JobPoller
from story_video.services.providers.base import ProviderStatus


class StatusSequence:
    """Returns (or raises) the queued items in order, repeating the last one."""

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0

    def get_status(self, provider_job_id):
        self.calls += 1
        item = self.items[min(self.calls, len(self.items)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def poller(sleeps):
    return JobPoller(interval=5, max_attempts=4, sleep=sleeps.append)


def test_returns_video_url_on_completion(poller, sleeps):
    provider = StatusSequence(
        ProviderStatus('queued'),
        ProviderStatus('dreaming'),
        ProviderStatus('completed', video_url='https://cdn.example.com/a.mp4'),
    )
    result = poller.await_terminal(provider, 'gen-1')

    assert result.status == SUCCEEDED
    assert result.succeeded
    assert result.video_url == 'https://cdn.example.com/a.mp4'
    assert result.attempts == 3
    # sleeps before every query
    assert sleeps == [5, 5, 5]


def test_gives_up_after_exactly_max_attempts(poller, sleeps):
    provider = StatusSequence(ProviderStatus('dreaming'))
    result = poller.await_terminal(provider, 'gen-1')

    assert result.status == TIMEOUT
    assert result.attempts == 4
    assert provider.calls == 4
    assert len(sleeps) == 4
    assert 'timed out after 4 attempts' in result.error


def test_failed_generation_carries_reason(poller):
    provider = StatusSequence(ProviderStatus('failed', failure_reason='prompt rejected'))
    result = poller.await_terminal(provider, 'gen-1')

    assert result.status == FAILED
    assert result.error == 'Generation failed: prompt rejected'
    assert result.attempts == 1


def test_completed_without_url_is_a_failure(poller):
    provider = StatusSequence(ProviderStatus('completed'))
    result = poller.await_terminal(provider, 'gen-1')

    assert result.status == FAILED
    assert not result.succeeded
    assert 'no video URL' in result.error


def test_transient_errors_are_retried(poller):
    provider = StatusSequence(
        ProviderRequestError(502, 'bad gateway'),
        httpx.ConnectError('connection reset'),
        ProviderStatus('completed', video_url='https://cdn.example.com/b.mp4'),
    )
    result = poller.await_terminal(provider, 'gen-1')

    assert result.succeeded
    assert result.attempts == 3


def test_transient_errors_count_against_the_budget(poller):
    provider = StatusSequence(ProviderRequestError(503, 'unavailable'))
    result = poller.await_terminal(provider, 'gen-1')

    assert result.status == TIMEOUT
    assert provider.calls == 4


def test_auth_errors_propagate(poller):
    provider = StatusSequence(ProviderAuthError(401, 'invalid key'))

    with pytest.raises(ProviderAuthError):
        poller.await_terminal(provider, 'gen-1')
    assert provider.calls == 1


def test_reports_each_attempt(poller):
    seen = []
    provider = StatusSequence(ProviderStatus('queued'), ProviderStatus('completed', video_url='u'))
    poller.await_terminal(provider, 'gen-1', on_attempt=lambda *args: seen.append(args))

    assert seen == [(1, 4, 'queued'), (2, 4, 'completed')]


def test_cancellation_stops_polling(poller):
    provider = StatusSequence(ProviderStatus('dreaming'))
    checks = iter([False, True])

    with pytest.raises(JobCancelled):
        poller.await_terminal(provider, 'gen-1', should_cancel=lambda: next(checks))
    assert provider.calls == 1


def test_rejects_empty_budget():
    with pytest.raises(ValueError):
        JobPoller(max_attempts=0)
