from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import aget_db
from app.services.ProgressService import ProgressService
from app.services.ProgressStore import SQLAlchemyProgressStore


def get_progress_service(db: AsyncSession = Depends(aget_db)) -> ProgressService:
    """ProgressService bound to the request's session."""
    return ProgressService(SQLAlchemyProgressStore(db))
