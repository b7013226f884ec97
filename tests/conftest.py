# tests/conftest.py
import os
import sys
import tempfile
from typing import List, Sequence, Tuple

import pytest

# Корень репозитория в PYTHONPATH, чтобы 'import scheduler' работал без установки
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Тестовое окружение: SQLite-файл во временной папке и eager Celery
_TMP = tempfile.gettempdir()
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/scheduler-test-{os.getpid()}.db"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("NOTIFIER_PROVIDER", "log")
os.environ.setdefault("UPDATE_BUS_PROVIDER", "memory")
os.environ.setdefault("ATTACHMENT_PROVIDER", "local")
os.environ.setdefault("ATTACHMENTS_DIR", os.path.join(_TMP, f"scheduler-media-{os.getpid()}"))

# Обязательно после установки окружения
from scheduler.core.notifications.base import BaseNotifier  # noqa: E402
from scheduler.workers.tasks import celery_app  # noqa: E402

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True


class RecordingNotifier(BaseNotifier):
    """Запоминает вызовы вместо отправки писем."""

    name = "recording"

    def __init__(self) -> None:
        self.calls: List[Tuple[List[str], str, str]] = []

    async def notify(self, recipients: Sequence[str], subject: str, body: str) -> None:
        self.calls.append((list(recipients), subject, body))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
