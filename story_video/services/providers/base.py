from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Optional

import httpx

from ...exceptions import ProviderAuthError, ProviderRequestError
from ..polling import COMPLETED, DREAMING, FAILED, QUEUED, JobPoller, PollResult


@dataclass(frozen=True)
class ProviderStatus:
    state: str
    video_url: Optional[str] = None
    failure_reason: Optional[str] = None


class VideoProvider(abc.ABC):
    """Submission and status lookup against one text-to-video backend.

    Subclasses implement ``submit`` and ``get_status``. Instances own an
    ``httpx.Client`` and must be closed, directly or through ``with``.
    """

    name = 'base'
    default_clip_seconds = 9

    def __init__(self, api_key: str, base_url: str, client: httpx.Client | None = None,
                 poller: JobPoller | None = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self._client = client or httpx.Client(timeout=120)
        self._poller = poller or JobPoller()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self._client.close()

    def _headers(self) -> dict:
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text
        if isinstance(data, dict):
            detail = data.get('detail') or data.get('message') or data.get('error')
            if detail:
                return str(detail)
        return response.text

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f'{self.base_url}{path}'
        try:
            res = self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise ProviderRequestError(None, f'{self.name} request to {path} failed: {e}') from e
        if res.status_code in (401, 403):
            raise ProviderAuthError(res.status_code, f'{self.name} authentication failed: {self._error_detail(res)}')
        if res.is_error:
            raise ProviderRequestError(res.status_code, self._error_detail(res))
        try:
            return res.json()
        except ValueError as e:
            raise ProviderRequestError(res.status_code, f'Unparseable response: {res.text[:500]}') from e

    @abc.abstractmethod
    def submit(self, prompt: str, continuation_ref: str | None = None) -> str:
        """Start a clip and return the provider job id."""

    @abc.abstractmethod
    def get_status(self, provider_job_id: str) -> ProviderStatus:
        """Return the normalised state of a provider job."""

    def extend(self, provider_job_id: str, prompt: str, duration_seconds: int) -> str:
        raise NotImplementedError(f'{self.name} does not support extending clips')

    def max_clip_duration(self) -> int:
        return self.default_clip_seconds

    def await_terminal(self, provider_job_id: str, on_attempt=None, should_cancel=None) -> PollResult:
        return self._poller.await_terminal(self, provider_job_id, on_attempt=on_attempt, should_cancel=should_cancel)
