from django.conf import settings
from rest_framework import serializers
from .models import GenerationJob


class GenerateRequestSerializer(serializers.Serializer):
    script = serializers.CharField(max_length=20000, trim_whitespace=True)

    def validate_script(self, value):
        minimum = settings.MIN_SCRIPT_LENGTH
        if len(value) < minimum:
            raise serializers.ValidationError(f'Script must be at least {minimum} characters long')
        return value


class SceneStatusSerializer(serializers.Serializer):
    sceneIndex = serializers.IntegerField(source='scene_index')
    description = serializers.CharField(allow_blank=True)
    duration = serializers.FloatField(source='actual_duration_seconds', allow_null=True)
    generationId = serializers.CharField(source='provider_job_id', allow_null=True)
    error = serializers.CharField(allow_null=True)


class GenerationJobStatusSerializer(serializers.ModelSerializer):
    """Read-only projection polled by the frontend.

    Individual clip URLs are withheld; only the merged video is exposed.
    """

    jobId = serializers.UUIDField(source='id')
    currentStep = serializers.CharField(source='current_step')
    scenesCount = serializers.IntegerField(source='scenes_count')
    results = serializers.SerializerMethodField()
    error = serializers.CharField(source='error_message', allow_null=True)
    errorDetails = serializers.JSONField(source='error_details', allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at')
    updatedAt = serializers.DateTimeField(source='updated_at')
    completedAt = serializers.DateTimeField(source='completed_at', allow_null=True)

    class Meta:
        model = GenerationJob
        fields = [
            'jobId', 'status', 'progress', 'currentStep', 'scenesCount', 'results',
            'warnings', 'error', 'errorDetails', 'createdAt', 'updatedAt', 'completedAt',
        ]
        read_only_fields = fields

    def get_results(self, job):
        scenes = job.scenes or []
        merged = job.merged_video_url or None
        return {
            'storyboard': job.storyboard,
            'video_url': merged,
            'merged_video_url': merged,
            'scenes': SceneStatusSerializer(scenes, many=True).data,
            'scenes_count': job.scenes_count,
            'total_duration_seconds': job.total_duration_seconds,
        }


class GenerationJobSerializer(serializers.ModelSerializer):
    class Meta:
        model = GenerationJob
        fields = [
            'id', 'status', 'progress', 'current_step', 'provider', 'scenes_count',
            'merged_video_url', 'total_duration_seconds', 'error_message',
            'created_at', 'updated_at', 'completed_at', 'processing_time_seconds',
        ]
        read_only_fields = fields
