from django.conf import settings
from django.db import models
from django.utils import timezone
import uuid

from .exceptions import InvalidJobTransition


class GenerationJob(models.Model):
    QUEUED = 'queued'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'
    STATUS_CHOICES = [
        (QUEUED, 'queued'),
        (PROCESSING, 'processing'),
        (COMPLETED, 'completed'),
        (FAILED, 'failed'),
    ]
    TERMINAL_STATUSES = (COMPLETED, FAILED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, blank=True, null=True)
    script = models.TextField()
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=QUEUED)
    progress = models.IntegerField(default=0)
    current_step = models.CharField(max_length=500, blank=True, default='Job queued...')
    provider = models.CharField(max_length=32, blank=True)
    storyboard = models.JSONField(blank=True, null=True)
    story_context = models.JSONField(blank=True, null=True)
    scenes = models.JSONField(default=list, blank=True)
    scenes_count = models.IntegerField(default=0)
    warnings = models.JSONField(default=list, blank=True)
    merged_video_url = models.CharField(max_length=2048, blank=True)
    total_duration_seconds = models.FloatField(blank=True, null=True)
    error_message = models.TextField(blank=True, null=True)
    error_details = models.JSONField(blank=True, null=True)
    cancel_requested = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    processing_time_seconds = models.IntegerField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', 'created_at'], name='story_video_user_id_6b1f0e_idx'),
            models.Index(fields=['status'], name='story_video_status_2c9d4a_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f'GenerationJob {self.id} ({self.status})'

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def _ensure_active(self):
        if self.is_terminal:
            raise InvalidJobTransition(f'Job {self.id} is already {self.status}')

    @classmethod
    def claim(cls, job_id):
        """Atomically move a queued job to processing. Returns the job, or None if another worker owns it."""
        claimed = cls.objects.filter(id=job_id, status=cls.QUEUED).update(
            status=cls.PROCESSING, current_step='Creating storyboard...', updated_at=timezone.now(),
        )
        return cls.objects.get(id=job_id) if claimed else None

    def cancel_was_requested(self):
        return type(self).objects.filter(id=self.id, cancel_requested=True).exists()

    def record_progress(self, progress, current_step, **fields):
        self._ensure_active()
        self.progress = max(self.progress, int(progress))
        self.current_step = current_step[:500]
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=['progress', 'current_step', 'updated_at', *fields])

    def _finish(self, completed):
        now = timezone.now()
        if completed:
            self.completed_at = now
        created = self.created_at or now
        if timezone.is_naive(created):
            created = timezone.make_aware(created, timezone.get_current_timezone())
        self.processing_time_seconds = int((now - created).total_seconds())

    def mark_completed(self, merged_video_url, scenes, scenes_count, total_duration_seconds, warnings):
        self._ensure_active()
        if not merged_video_url:
            raise InvalidJobTransition('A completed job needs a merged video reference')
        self.status = self.COMPLETED
        self.progress = 100
        self.current_step = f'Completed: {scenes_count} clips, {total_duration_seconds:.0f}s of video'
        self.merged_video_url = merged_video_url
        self.scenes = scenes
        self.scenes_count = scenes_count
        self.total_duration_seconds = total_duration_seconds
        self.warnings = warnings
        self.error_message = None
        self.error_details = None
        self._finish(completed=True)
        self.save(update_fields=[
            'status', 'progress', 'current_step', 'merged_video_url', 'scenes', 'scenes_count',
            'total_duration_seconds', 'warnings', 'error_message', 'error_details', 'completed_at',
            'processing_time_seconds', 'updated_at',
        ])

    def mark_failed(self, message, details=None, scenes=None, warnings=None):
        self._ensure_active()
        self.status = self.FAILED
        self.current_step = 'Failed'
        self.error_message = message
        self.error_details = details
        if scenes is not None:
            self.scenes = scenes
            self.scenes_count = sum(1 for s in scenes if s.get('video_url'))
        if warnings is not None:
            self.warnings = warnings
        self._finish(completed=False)
        self.save(update_fields=[
            'status', 'current_step', 'error_message', 'error_details', 'scenes', 'scenes_count',
            'warnings', 'processing_time_seconds', 'updated_at',
        ])
