import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GenerationJob",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("script", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "queued"),
                            ("processing", "processing"),
                            ("completed", "completed"),
                            ("failed", "failed"),
                        ],
                        default="queued",
                        max_length=32,
                    ),
                ),
                ("progress", models.IntegerField(default=0)),
                ("current_step", models.CharField(blank=True, default="Job queued...", max_length=500)),
                ("provider", models.CharField(blank=True, max_length=32)),
                ("storyboard", models.JSONField(blank=True, null=True)),
                ("story_context", models.JSONField(blank=True, null=True)),
                ("scenes", models.JSONField(blank=True, default=list)),
                ("scenes_count", models.IntegerField(default=0)),
                ("warnings", models.JSONField(blank=True, default=list)),
                ("merged_video_url", models.CharField(blank=True, max_length=2048)),
                ("total_duration_seconds", models.FloatField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("error_details", models.JSONField(blank=True, null=True)),
                ("cancel_requested", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("processing_time_seconds", models.IntegerField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="story_video_user_id_6b1f0e_idx"),
                    models.Index(fields=["status"], name="story_video_status_2c9d4a_idx"),
                ],
            },
        ),
    ]
