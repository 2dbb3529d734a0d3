from django.contrib import admin
from .models import GenerationJob

@admin.register(GenerationJob)
class GenerationJobAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'status', 'progress', 'scenes_count', 'provider', 'created_at')
    list_filter = ('status', 'provider', 'created_at')
    search_fields = ('id', 'script', 'user__username')
    readonly_fields = ('storyboard', 'story_context', 'scenes', 'warnings', 'error_details')
