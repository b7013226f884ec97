# scheduler/__init__.py
"""
Appointment scheduler service.

FastAPI приложение: ``scheduler.main:app``; Celery воркер:
``celery -A scheduler.workers.tasks worker``.
"""
