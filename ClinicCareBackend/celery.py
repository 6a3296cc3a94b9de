import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ClinicCareBackend.settings')

app = Celery('ClinicCareBackend')

# broker, result backend and timezone come from the CELERY_* settings
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# nightly pass over health cards so the cached status follows expiry dates
app.conf.beat_schedule = {
    'refresh-health-card-statuses': {
        'task': 'health_cards.tasks.refresh_health_card_statuses',
        'schedule': crontab(hour=0, minute=5),
    },
}
