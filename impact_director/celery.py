import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'impact_director.settings')
app = Celery('impact_director')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
