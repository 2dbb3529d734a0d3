"""Shared pytest fixtures and fakes."""

import pytest

from story_video.services.merge_service import MergeOutcome, dedupe_urls
from story_video.services.polling import FAILED, SUCCEEDED, TIMEOUT, PollResult

LONG_SCRIPT = (
    "Aisha lives in a small village where the only well has run dry.\n\n"
    "She walks for hours every morning with her little brother to fetch water from the river.\n\n"
    "At school her teacher explains how rainwater can be collected from rooftops.\n\n"
    "Aisha gathers her classmates and together they build a collector from old barrels.\n\n"
    "The whole village celebrates as clean water fills the barrels after the first storm."
)

# Eight paragraphs, one more than the storyboard keeps.
FULL_LENGTH_SCRIPT = LONG_SCRIPT + (
    "\n\nNeighbouring villages visit to learn how the collectors were built.\n\n"
    "Aisha teaches the younger children to keep the barrels covered and clean.\n\n"
    "Years later a new well is dug, and the collectors still stand beside it."
)


class FakeProvider:
    """Scripted provider. Each ``submit`` consumes one outcome.

    An outcome is a video URL (success), a ``PollResult`` (returned from
    polling as-is) or an exception instance (raised from ``submit``).
    """

    name = 'fake'

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.submissions = []
        self.closed = False
        self._pending = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.closed = True

    def submit(self, prompt, continuation_ref=None):
        outcome = self.outcomes.pop(0)
        self.submissions.append((prompt, continuation_ref))
        if isinstance(outcome, Exception):
            raise outcome
        job_id = f'gen-{len(self.submissions)}'
        self._pending[job_id] = outcome
        return job_id

    def await_terminal(self, provider_job_id, on_attempt=None, should_cancel=None):
        outcome = self._pending.pop(provider_job_id)
        if on_attempt:
            on_attempt(1, 1, 'completed')
        if isinstance(outcome, PollResult):
            return outcome
        return PollResult(SUCCEEDED, video_url=outcome, attempts=1)

    @property
    def continuation_refs(self):
        return [ref for _, ref in self.submissions]


class FakeMerger:
    def __init__(self, degrade=False):
        self.degrade = degrade
        self.calls = []

    def merge(self, urls):
        self.calls.append(list(urls))
        unique, duplicates = dedupe_urls(urls)
        if len(unique) == 1:
            return MergeOutcome(artifact=unique[0], unique_urls=unique, duplicates=duplicates)
        if self.degrade:
            return MergeOutcome(artifact=unique[0], unique_urls=unique, duplicates=duplicates,
                                degraded=True, error='ffmpeg unavailable')
        return MergeOutcome(artifact='/tmp/merged.mp4', unique_urls=unique, duplicates=duplicates,
                            concatenated=True)


def failed(reason='content policy'):
    return PollResult(FAILED, error=f'Generation failed: {reason}', attempts=1)


def timed_out():
    return PollResult(TIMEOUT, error='Generation timed out after 60 attempts', attempts=60)


@pytest.fixture
def long_script():
    return LONG_SCRIPT


@pytest.fixture
def full_length_script():
    return FULL_LENGTH_SCRIPT


@pytest.fixture
def fake_merger():
    return FakeMerger()


@pytest.fixture
def fixed_probe():
    """Every clip measures exactly 9 seconds."""
    return lambda url, nominal: 9.0
