# utils/notifier.py
from fastapi import BackgroundTasks

from config import settings
from database import SessionLocal
from services.notification_service import BackgroundNotifier, NotificationDispatcher

dispatcher = NotificationDispatcher(SessionLocal)


# FastAPI dependency, overridden in tests
def get_notifier(background_tasks: BackgroundTasks):
    # Delivery runs after the response unless configured inline
    if settings.NOTIFICATIONS_ASYNC:
        return BackgroundNotifier(background_tasks, dispatcher)
    return dispatcher
