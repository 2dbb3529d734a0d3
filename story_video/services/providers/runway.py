import logging

from ...exceptions import ProviderRequestError
from .base import COMPLETED, DREAMING, FAILED, QUEUED, ProviderStatus, VideoProvider

logger = logging.getLogger(__name__)

# Allowed clip lengths per model, in seconds.
MODEL_DURATIONS = {
    'veo3.1': (4, 6, 8),
    'veo3.1_fast': (4, 6, 8),
    'gen3a_turbo': (5, 10),
    'gen4_turbo': (5, 10),
}
EXTEND_MODEL = 'gen3a_turbo'

RATIO_MAP = {
    '16:9': '1280:720',
    '9:16': '720:1280',
    '1:1': '720:720',
    '4:3': '960:720',
    '3:4': '720:960',
    '21:9': '1920:720',
    '9:21': '720:1920',
}

STATE_MAP = {
    'PENDING': QUEUED,
    'THROTTLED': QUEUED,
    'QUEUED': QUEUED,
    'RUNNING': DREAMING,
    'PROCESSING': DREAMING,
    'SUCCEEDED': COMPLETED,
    'COMPLETED': COMPLETED,
    'FAILED': FAILED,
    'CANCELLED': FAILED,
    'ERROR': FAILED,
}


def snap_duration(model, requested):
    allowed = MODEL_DURATIONS.get(model, MODEL_DURATIONS[EXTEND_MODEL])
    return min(allowed, key=lambda d: (abs(d - requested), -d))


class RunwayProvider(VideoProvider):
    """Runway ML. Fresh clips use text-to-video, continuations use the extend endpoint."""

    name = 'runway'
    default_clip_seconds = 10

    def __init__(self, api_key, base_url='https://api.dev.runwayml.com/v1', api_version='2024-11-06',
                 model=EXTEND_MODEL, aspect_ratio='16:9', clip_seconds=10, client=None, poller=None):
        super().__init__(api_key, base_url, client=client, poller=poller)
        self.api_version = api_version
        self.model = model
        self.ratio = RATIO_MAP.get(aspect_ratio, RATIO_MAP['16:9'])
        self.clip_seconds = snap_duration(model, clip_seconds)

    def _headers(self):
        h = super()._headers()
        h['X-Runway-Version'] = self.api_version
        return h

    def max_clip_duration(self):
        return max(MODEL_DURATIONS.get(self.model, MODEL_DURATIONS[EXTEND_MODEL]))

    @staticmethod
    def _task_id(data):
        task_id = data.get('id') if isinstance(data, dict) else None
        if not task_id:
            raise ProviderRequestError(None, f'No task ID in response: {data}')
        return str(task_id)

    def submit(self, prompt, continuation_ref=None):
        if continuation_ref:
            return self.extend(continuation_ref, prompt, self.clip_seconds)
        body = {
            'model': self.model,
            'promptText': prompt,
            'duration': self.clip_seconds,
            'ratio': self.ratio,
        }
        task_id = self._task_id(self._request('POST', '/text_to_video', json=body))
        logger.info('Runway task %s created with %s (%ss)', task_id, self.model, self.clip_seconds)
        return task_id

    def extend(self, provider_job_id, prompt, duration_seconds):
        body = {
            'model': EXTEND_MODEL,
            'video': provider_job_id,
            'prompt_text': prompt,
            'duration': snap_duration(EXTEND_MODEL, duration_seconds),
        }
        task_id = self._task_id(self._request('POST', '/gen3/extend', json=body))
        logger.info('Runway extend task %s created from %s', task_id, provider_job_id)
        return task_id

    def get_status(self, provider_job_id):
        data = self._request('GET', f'/tasks/{provider_job_id}')
        state = STATE_MAP.get(str(data.get('status') or 'PENDING').upper(), QUEUED)
        output = data.get('output')
        if isinstance(output, list):
            video_url = output[0] if output else None
        else:
            video_url = output or None
        failure = data.get('failure') or data.get('failureCode') or data.get('error')
        if isinstance(failure, dict):
            failure = failure.get('message')
        return ProviderStatus(state=state, video_url=video_url, failure_reason=failure)
