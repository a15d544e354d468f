"""Data access layer over the remote PostgREST store."""

from progress_sync.repositories.progress import ProgressRepository
from progress_sync.repositories.user_state import UserStateRepository

__all__ = ["ProgressRepository", "UserStateRepository"]
