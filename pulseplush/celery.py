# pulseplush/celery.py
"""
Celery configuration for donor notification fan-out and housekeeping
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pulseplush.settings')

# Create Celery app
app = Celery('pulseplush')

# Load config from Django settings (prefix: CELERY_)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'expire-stale-notifications': {
        'task': 'notifications.tasks.expire_stale_notifications',
        'schedule': crontab(minute='*/15'),
    },
    'cleanup-expired-notifications': {
        'task': 'notifications.tasks.cleanup_expired_notifications',
        'schedule': crontab(minute=30, hour=3),
    },
}
