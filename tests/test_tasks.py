"""Tests for the Celery generation task and job persistence."""

import pytest

from conftest import FULL_LENGTH_SCRIPT, LONG_SCRIPT, FakeMerger, FakeProvider, failed
from story_video import tasks
from story_video.services import storage
from story_video.services.merge_service import MergeOutcome
from story_video.exceptions import InvalidJobTransition, ProviderConfigurationError
from story_video.models import GenerationJob

pytestmark = pytest.mark.django_db(transaction=True)

CLIPS = [f'https://cdn.test/clip{i}.mp4' for i in range(1, 6)]


@pytest.fixture
def job():
    return GenerationJob.objects.create(script=LONG_SCRIPT)


@pytest.fixture
def pipeline(monkeypatch):
    """Wire the task to a scripted provider and in-memory merge/publish."""
    state = {'provider': FakeProvider(CLIPS), 'published': []}

    def publish(local_path, job_id):
        state['published'].append((local_path, job_id))
        return f'/api/video/clip/merged_{job_id}.mp4/'

    monkeypatch.setattr(tasks, 'get_video_provider', lambda: state['provider'])
    monkeypatch.setattr(tasks, 'VideoMerger', FakeMerger)
    monkeypatch.setattr(tasks, 'probe_duration', lambda url, nominal: 9.0)
    monkeypatch.setattr(tasks, 'publish_merged_video', publish)
    return state


def test_successful_job_is_completed(job, pipeline):
    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.COMPLETED
    assert job.progress == 100
    assert job.provider == 'fake'
    assert job.merged_video_url == f'/api/video/clip/merged_{job.id}.mp4/'
    assert job.scenes_count == 5
    assert job.total_duration_seconds == 45.0
    assert job.storyboard['scenes'][0]['index'] == 1
    assert job.story_context['characters'][0]['name'] == 'Aisha'
    assert [s['continuation_ref'] for s in job.scenes] == [None, 'gen-1', 'gen-2', 'gen-3', 'gen-4']
    assert job.completed_at is not None
    assert job.processing_time_seconds is not None
    assert job.error_message is None
    assert pipeline['published'] == [('/tmp/merged.mp4', job.id)]
    assert pipeline['provider'].closed


def test_first_scene_failure_fails_job_with_details(job, pipeline):
    pipeline['provider'] = FakeProvider([failed('nsfw')])

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.FAILED
    assert job.error_message.startswith('First clip failed')
    assert job.error_details['type'] == 'NoScenesSucceeded'
    assert job.error_details['scene_index'] == 1
    assert job.scenes[0]['error'] == 'Generation failed: nsfw'
    assert job.scenes_count == 0
    assert job.completed_at is None


def test_partial_failures_still_complete(job, pipeline):
    pipeline['provider'] = FakeProvider([CLIPS[0], failed(), CLIPS[2], CLIPS[3], CLIPS[4]])

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.COMPLETED
    assert job.scenes_count == 4
    assert len(job.scenes) == 5
    assert job.scenes[1]['error_type'] == 'GenerationFailed'


def test_missing_provider_configuration_fails_job(job, monkeypatch):
    def not_configured():
        raise ProviderConfigurationError('LUMA_API_KEY is not configured')

    monkeypatch.setattr(tasks, 'get_video_provider', not_configured)

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.FAILED
    assert job.error_message == 'LUMA_API_KEY is not configured'
    assert job.error_details['type'] == 'ProviderConfigurationError'


def test_job_is_claimed_only_once(job, pipeline):
    assert GenerationJob.claim(job.id) is not None
    assert GenerationJob.claim(job.id) is None

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.PROCESSING
    assert pipeline['provider'].submissions == []


def test_cancelled_job_fails_with_partial_results(job, pipeline):
    class CancelAfterFirstClip(FakeProvider):
        def await_terminal(self, provider_job_id, on_attempt=None, should_cancel=None):
            result = super().await_terminal(provider_job_id, on_attempt, should_cancel)
            GenerationJob.objects.filter(id=job.id).update(cancel_requested=True)
            return result

    pipeline['provider'] = CancelAfterFirstClip(CLIPS)

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.FAILED
    assert job.error_message == 'Cancelled by user'
    assert job.error_details['type'] == 'JobCancelled'
    assert job.scenes_count == 1
    assert len(pipeline['provider'].submissions) == 1


def test_publish_failure_falls_back_to_first_clip(job, pipeline, monkeypatch):
    def broken_publish(local_path, job_id):
        raise OSError('disk full')

    monkeypatch.setattr(tasks, 'publish_merged_video', broken_publish)

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.COMPLETED
    assert job.merged_video_url == CLIPS[0]
    assert job.total_duration_seconds == 9.0
    assert job.warnings[-1]['type'] == 'merge_degraded'


def test_failed_local_publish_removes_merged_temp_file(job, pipeline, monkeypatch, settings, tmp_path):
    merged = tmp_path / 'concat.mp4'

    class TempFileMerger(FakeMerger):
        def merge(self, urls):
            outcome = super().merge(urls)
            merged.write_bytes(b'merged mp4')
            return MergeOutcome(artifact=str(merged), unique_urls=outcome.unique_urls,
                                duplicates=outcome.duplicates, concatenated=True)

    blocker = tmp_path / 'not-a-directory'
    blocker.write_text('')
    settings.GCS_BUCKET = None
    settings.MERGED_VIDEO_DIR = blocker / 'merged-videos'
    monkeypatch.setattr(tasks, 'VideoMerger', TempFileMerger)
    monkeypatch.setattr(tasks, 'publish_merged_video', storage.publish_merged_video)

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.COMPLETED
    assert job.merged_video_url == CLIPS[0]
    assert job.warnings[-1]['type'] == 'merge_degraded'
    assert not merged.exists()


def test_full_length_script_completes_with_seven_clips(pipeline):
    job = GenerationJob.objects.create(script=FULL_LENGTH_SCRIPT)
    clips = [f'https://cdn.test/long{i}.mp4' for i in range(1, 8)]
    pipeline['provider'] = FakeProvider(clips)

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.COMPLETED
    assert job.scenes_count == 7
    assert [s['video_url'] for s in job.scenes] == clips
    assert job.total_duration_seconds == 63.0


def test_unexpected_errors_fail_the_job(job, pipeline):
    pipeline['provider'] = FakeProvider([RuntimeError('boom')])

    tasks.process_generation_job(str(job.id))
    job.refresh_from_db()

    assert job.status == GenerationJob.FAILED
    assert job.error_message == 'boom'
    assert job.error_details['type'] == 'RuntimeError'


def test_terminal_jobs_reject_further_transitions(job):
    job.mark_failed('Cancelled by user')

    with pytest.raises(InvalidJobTransition):
        job.record_progress(50, 'Generating clip 3/5...')
    with pytest.raises(InvalidJobTransition):
        job.mark_completed('https://cdn.test/x.mp4', [], 0, 0.0, [])


def test_progress_never_goes_backwards(job):
    job.record_progress(40, 'Clip 2/5 completed')
    job.record_progress(20, 'Polling clip 3/5')
    job.refresh_from_db()

    assert job.progress == 40
    assert job.current_step == 'Polling clip 3/5'
