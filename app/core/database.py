from supabase import create_client, Client
from app.core.config import settings
from app.core.repository import LeaveRepository, MemoryRepository, SupabaseRepository

_supabase_client: Client | None = None
_repository: LeaveRepository | None = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


def get_repository() -> LeaveRepository:
    """FastAPI dependency. Tests replace it through app.dependency_overrides."""
    global _repository
    if _repository is None:
        if settings.STORAGE_BACKEND == "memory":
            _repository = MemoryRepository()
        else:
            _repository = SupabaseRepository(get_supabase())
    return _repository
