"""
Celery configuration for the Django project.
Named celery_app.py to avoid conflict with celery package.
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'school_app.settings')

app = Celery('sms_background_tasks')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# tasks/ is not a Django app, so its modules are listed explicitly
app.autodiscover_tasks(lambda: ['tasks'], related_name='promotion_tasks')
app.autodiscover_tasks(lambda: ['tasks'], related_name='system_tasks')


@app.task(name='health_check')
def health_check():
    """Simple health check task"""
    import datetime
    return {
        'status': 'healthy',
        'timestamp': datetime.datetime.now().isoformat()
    }
