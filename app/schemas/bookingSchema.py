from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from app.constants.constants import BookingStatus, BookingPaymentStatus


class BookingResponse(BaseModel):
    booking_id: str
    client_id: str
    provider_id: str
    service_title: Optional[str] = None
    status: BookingStatus
    payment_status: BookingPaymentStatus
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    project_progress: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProgressResponse(BaseModel):
    booking_id: str
    booking_progress: int
    milestone_id: Optional[str] = None
    milestone_progress: Optional[int] = None


class BackfillRequest(BaseModel):
    booking_ids: Optional[List[str]] = Field(None, min_length=1)
    dry_run: bool = False


class BackfillResponse(BaseModel):
    processed: int
    changed: List[Dict[str, Any]]
    failures: Dict[str, str]
    dry_run: bool
