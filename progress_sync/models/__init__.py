"""Domain models shared across the backend."""

from progress_sync.models.telegram_user import TelegramIdentity

__all__ = ["TelegramIdentity"]
