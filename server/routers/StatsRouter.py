from fastapi import APIRouter, Depends

from server.dependencies.identity import get_repository
from shared.models.stats import UsageStats
from shared.stores.ScopedRepository import ScopedRepository

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
async def get_stats(repository: ScopedRepository = Depends(get_repository)) -> UsageStats:
    """Usage counters of the caller. Token usage is an estimate of 100 per message."""
    return await repository.get_stats()
