from django.apps import AppConfig


class StoryVideoConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'story_video'
    verbose_name = 'Story video generation'
