import logging
import threading

import redis
from django.conf import settings
from django.http import FileResponse, Http404
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    extend_schema,
    OpenApiResponse,
    OpenApiExample,
    OpenApiParameter,
)
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import GenerationJob
from .serializers import GenerateRequestSerializer, GenerationJobSerializer, GenerationJobStatusSerializer
from .services.storage import merged_video_path
from .tasks import process_generation_job

logger = logging.getLogger(__name__)


def _broker_available():
    try:
        return bool(redis.Redis.from_url(settings.CELERY_BROKER_URL, socket_connect_timeout=2).ping())
    except redis.RedisError:
        return False


def dispatch_generation_job(job_id):
    """Queue the job for a Celery worker, or run it in a thread when no broker is reachable."""
    if settings.RUN_TASK_INLINE or not _broker_available():
        logger.info('Running job %s inline in a background thread', job_id)
        threading.Thread(target=process_generation_job.apply, args=([job_id],), daemon=True).start()
        return
    process_generation_job.apply_async(args=[job_id], queue='story_video')


class VideoGenerationViewSet(viewsets.GenericViewSet):
    serializer_class = GenerationJobStatusSerializer
    queryset = GenerationJob.objects.all()

    @extend_schema(
        tags=['Video Generation'],
        summary='Start video generation job',
        description='Creates a job and queues continuous clip generation. Returns immediately; poll the status endpoint.',
        request=GenerateRequestSerializer,
        responses={
            202: OpenApiResponse(description='Job accepted and queued'),
            400: OpenApiResponse(description='Validation error'),
        },
        operation_id='video_generate',
        examples=[
            OpenApiExample(
                'Example Request',
                value={
                    "script": "Aisha lives in a small village where the only well has run dry. "
                              "She gathers her classmates to build a rainwater collector at school.",
                },
            )
        ],
    )
    @action(detail=False, methods=['post'])
    def generate(self, request):
        serializer = GenerateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user if request.user.is_authenticated else None
        job = GenerationJob.objects.create(user=user, script=serializer.validated_data['script'])
        dispatch_generation_job(str(job.id))
        return Response({
            'jobId': str(job.id),
            'status': job.status,
            'message': 'Generation job created. Poll /api/video/status/<jobId>/ for status.',
        }, status=status.HTTP_202_ACCEPTED)

    @extend_schema(
        tags=['Jobs'],
        summary='Get job status',
        operation_id='video_get_status',
        parameters=[
            OpenApiParameter(
                name='job_id',
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.PATH,
                description='GenerationJob UUID',
                required=True,
            ),
        ],
        responses={
            200: GenerationJobStatusSerializer,
            404: OpenApiResponse(description='Job not found'),
        },
    )
    @action(detail=False, methods=['get'], url_path='status/(?P<job_id>[0-9a-fA-F-]+)')
    def get_status(self, request, job_id=None):
        try:
            job = GenerationJob.objects.get(id=job_id)
        except (GenerationJob.DoesNotExist, ValueError):
            return Response({'error': 'Job not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(GenerationJobStatusSerializer(job).data)

    @extend_schema(
        tags=['Jobs'],
        summary='List jobs for current user',
        description='Returns all jobs for the authenticated user. Optional query parameter "status" filters by job status.',
        operation_id='video_list_jobs',
        parameters=[
            OpenApiParameter(
                name='status',
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description='Filter by status',
                required=False,
                enum=[choice for choice, _ in GenerationJob.STATUS_CHOICES],
            ),
        ],
        responses={200: GenerationJobSerializer(many=True)},
    )
    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def list_jobs(self, request):
        jobs = GenerationJob.objects.filter(user=request.user)
        status_filter = request.query_params.get('status')
        if status_filter:
            jobs = jobs.filter(status=status_filter)
        return Response(GenerationJobSerializer(jobs, many=True).data)

    @extend_schema(
        tags=['Jobs'],
        summary='Cancel a running job',
        description='Stops further submissions and polling. Completed scenes stay available; the job ends failed and cannot be resumed.',
        operation_id='video_cancel',
        request=None,
        responses={
            202: OpenApiResponse(description='Cancellation requested'),
            404: OpenApiResponse(description='Job not found'),
            409: OpenApiResponse(description='Job already finished'),
        },
    )
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        try:
            job = GenerationJob.objects.get(id=pk)
        except (GenerationJob.DoesNotExist, ValueError):
            return Response({'error': 'Job not found'}, status=status.HTTP_404_NOT_FOUND)
        if job.is_terminal:
            return Response({'error': f'Job already {job.status}'}, status=status.HTTP_409_CONFLICT)
        GenerationJob.objects.filter(id=job.id).update(cancel_requested=True)
        if job.status == GenerationJob.QUEUED:
            # No worker has claimed it yet, so nothing else will move it out of queued.
            claimed = GenerationJob.claim(job.id)
            if claimed is not None:
                claimed.mark_failed('Cancelled by user', {'error': 'Cancelled by user', 'type': 'JobCancelled'})
        return Response({'jobId': str(job.id), 'cancel_requested': True}, status=status.HTTP_202_ACCEPTED)

    @extend_schema(
        tags=['System'],
        summary='Download a merged video',
        operation_id='video_clip',
        responses={200: OpenApiResponse(description='MP4 file'), 404: OpenApiResponse(description='Not found')},
    )
    @action(detail=False, methods=['get'], url_path=r'clip/(?P<filename>merged_[0-9a-fA-F-]+\.mp4)', url_name='clip')
    def clip(self, request, filename=None):
        path = merged_video_path(filename)
        if not path.is_file():
            raise Http404('Video not found')
        return FileResponse(open(path, 'rb'), content_type='video/mp4')

    @extend_schema(
        tags=['System'],
        summary='Health check',
        operation_id='system_health',
        responses={
            200: OpenApiResponse(description='Health status'),
        },
    )
    @action(detail=False, methods=['get'])
    def health(self, request):
        db_status = 'connected'
        try:
            GenerationJob.objects.exists()
        except Exception:
            db_status = 'error'
        redis_status = 'connected' if _broker_available() else 'error'
        return Response({
            'status': 'healthy' if db_status == 'connected' else 'degraded',
            'timestamp': timezone.now(),
            'database': db_status,
            'redis': redis_status,
            'provider': settings.VIDEO_PROVIDER,
        })
