import logging
import os

from celery import shared_task
from django.conf import settings
from django.db import close_old_connections, connection
from django.db.utils import OperationalError, InterfaceError

from .exceptions import PipelineError
from .models import GenerationJob
from .services.duration import probe_duration
from .services.merge_service import VideoMerger
from .services.orchestrator import SequentialOrchestrator
from .services.providers import get_video_provider
from .services.storage import publish_merged_video

logger = logging.getLogger(__name__)


def _scene_dicts(scenes):
    return [s.to_dict() for s in scenes]


def _persist_update(job):
    def on_update(update):
        close_old_connections()
        fields = {'scenes': _scene_dicts(update.scenes), 'warnings': update.warnings}
        if update.storyboard is not None:
            fields['storyboard'] = update.storyboard.to_dict()
            fields['story_context'] = update.context.to_dict()
        job.record_progress(update.progress, update.current_step, **fields)
    return on_update


def build_orchestrator(job, provider):
    return SequentialOrchestrator(
        provider,
        merger=VideoMerger(),
        probe=probe_duration,
        on_update=_persist_update(job),
        should_cancel=job.cancel_was_requested,
        max_scenes=settings.MAX_SCENES,
        scene_seconds=settings.CLIP_DURATION_SECONDS,
        target_seconds=settings.TARGET_DURATION_SECONDS,
        cost_per_clip=settings.COST_PER_CLIP,
        max_budget=settings.MAX_BUDGET,
    )


def _error_details(error, orchestrator=None):
    details = {'error': str(error), 'type': type(error).__name__}
    if orchestrator is not None and orchestrator.scenes:
        details['scene_index'] = orchestrator.scenes[-1].scene_index
    return details


def run_generation(job, provider):
    orchestrator = build_orchestrator(job, provider)
    try:
        result = orchestrator.run(job.script)
        merged_url = result.merge.artifact
        if result.merge.concatenated:
            try:
                merged_url = publish_merged_video(result.merge.artifact, job.id)
            except Exception as e:
                logger.exception('Publishing merged video for job %s failed, using the first clip', job.id)
                try:
                    os.remove(result.merge.artifact)
                except FileNotFoundError:
                    pass
                merged_url = result.merge.unique_urls[0]
                result.total_duration_seconds = result.successful_scenes[0].actual_duration_seconds or 0
                result.warnings.append({'type': 'merge_degraded', 'message': f'Using first clip only: {e}'})
    except PipelineError as e:
        logger.error('Job %s failed: %s', job.id, e)
        close_old_connections()
        job.mark_failed(str(e), _error_details(e, orchestrator),
                        scenes=_scene_dicts(orchestrator.scenes), warnings=orchestrator.warnings)
        return job
    close_old_connections()
    job.mark_completed(
        merged_url,
        scenes=_scene_dicts(result.scenes),
        scenes_count=len(result.successful_scenes),
        total_duration_seconds=result.total_duration_seconds,
        warnings=result.warnings,
    )
    logger.info('Job %s completed with %s clips (%.1fs): %s',
                job.id, job.scenes_count, result.total_duration_seconds, merged_url)
    return job


@shared_task(queue='story_video', bind=True, autoretry_for=(OperationalError, InterfaceError), retry_kwargs={'max_retries': 3, 'countdown': 5})
def process_generation_job(self, job_id):
    connection.close()
    job = GenerationJob.claim(job_id)
    if job is None:
        logger.info('Job %s is not queued, skipping', job_id)
        return
    logger.info('Starting job %s', job_id)
    try:
        provider = get_video_provider()
    except PipelineError as e:
        job.mark_failed(str(e), _error_details(e))
        return
    job.record_progress(job.progress, job.current_step, provider=provider.name)
    try:
        with provider:
            run_generation(job, provider)
    except Exception as e:
        logger.exception('Unexpected error in job %s', job_id)
        close_old_connections()
        job = GenerationJob.objects.get(id=job_id)
        if not job.is_terminal:
            job.mark_failed(str(e) or 'Generation failed', _error_details(e))
