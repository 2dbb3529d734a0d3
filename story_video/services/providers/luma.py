import logging

from ...exceptions import ProviderRequestError
from .base import COMPLETED, DREAMING, FAILED, QUEUED, ProviderStatus, VideoProvider

logger = logging.getLogger(__name__)

STATE_MAP = {
    'queued': QUEUED,
    'pending': QUEUED,
    'dreaming': DREAMING,
    'completed': COMPLETED,
    'failed': FAILED,
}


class LumaProvider(VideoProvider):
    """Luma Dream Machine. Continuation uses a ``generation`` keyframe."""

    name = 'luma'
    default_clip_seconds = 9

    def __init__(self, api_key, base_url='https://api.lumalabs.ai/dream-machine/v1', model='ray-flash-2',
                 resolution='540p', aspect_ratio='16:9', clip_seconds=9, client=None, poller=None):
        super().__init__(api_key, base_url, client=client, poller=poller)
        self.model = model
        self.resolution = resolution
        self.aspect_ratio = aspect_ratio
        # Luma only offers 5s and 9s clips.
        self.clip_seconds = 5 if clip_seconds <= 5 else 9

    def max_clip_duration(self):
        return 9

    def build_request(self, prompt, continuation_ref=None):
        body = {
            'prompt': prompt,
            'model': self.model,
            'aspect_ratio': self.aspect_ratio,
            'duration': f'{self.clip_seconds}s',
            'resolution': self.resolution,
        }
        if continuation_ref:
            body['keyframes'] = {'frame1': {'type': 'generation', 'id': continuation_ref}}
        return body

    def submit(self, prompt, continuation_ref=None):
        body = self.build_request(prompt, continuation_ref)
        data = self._request('POST', '/generations', json=body)
        generation_id = data.get('id') if isinstance(data, dict) else None
        if not generation_id:
            raise ProviderRequestError(None, f'No generation ID in response: {data}')
        logger.info('Luma generation %s created (continuation of %s)', generation_id, continuation_ref or 'none')
        return str(generation_id)

    def extend(self, provider_job_id, prompt, duration_seconds):
        return self.submit(prompt, continuation_ref=provider_job_id)

    def get_status(self, provider_job_id):
        data = self._request('GET', f'/generations/{provider_job_id}')
        raw_state = (data.get('state') or 'queued').lower()
        assets = data.get('assets') or {}
        return ProviderStatus(
            state=STATE_MAP.get(raw_state, QUEUED),
            video_url=assets.get('video') if isinstance(assets, dict) else None,
            failure_reason=data.get('failure_reason'),
        )
