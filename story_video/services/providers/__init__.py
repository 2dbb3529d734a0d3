from django.conf import settings

from ...exceptions import ProviderConfigurationError
from ..polling import JobPoller
from .base import ProviderStatus, VideoProvider
from .luma import LumaProvider
from .runway import RunwayProvider


def build_poller():
    return JobPoller(interval=settings.POLL_INTERVAL_SECONDS, max_attempts=settings.POLL_MAX_ATTEMPTS)


def get_video_provider(name=None):
    """Build a new provider client for ``name`` (defaults to ``VIDEO_PROVIDER``).

    The caller owns the instance and must close it.
    """
    name = (name or settings.VIDEO_PROVIDER or 'luma').lower()
    if name == 'luma':
        if not settings.LUMA_API_KEY:
            raise ProviderConfigurationError('LUMA_API_KEY is not configured')
        return LumaProvider(
            settings.LUMA_API_KEY,
            base_url=settings.LUMA_API_BASE,
            model=settings.LUMA_MODEL,
            resolution=settings.LUMA_RESOLUTION,
            aspect_ratio=settings.VIDEO_ASPECT_RATIO,
            clip_seconds=settings.CLIP_DURATION_SECONDS,
            poller=build_poller(),
        )
    if name == 'runway':
        if not settings.RUNWAY_API_KEY:
            raise ProviderConfigurationError('RUNWAY_API_KEY or RUNWAYML_API_SECRET is not configured')
        return RunwayProvider(
            settings.RUNWAY_API_KEY,
            base_url=settings.RUNWAY_API_BASE,
            api_version=settings.RUNWAY_API_VERSION,
            model=settings.RUNWAY_MODEL,
            aspect_ratio=settings.VIDEO_ASPECT_RATIO,
            clip_seconds=settings.CLIP_DURATION_SECONDS,
            poller=build_poller(),
        )
    raise ProviderConfigurationError(f'Unknown video provider: {name}')


__all__ = [
    'ProviderStatus',
    'VideoProvider',
    'LumaProvider',
    'RunwayProvider',
    'build_poller',
    'get_video_provider',
]
