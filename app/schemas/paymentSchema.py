from typing import Any, Dict, Optional
from pydantic import BaseModel, EmailStr


class PaymentInitRequest(BaseModel):
    """Request schema for starting a booking payment."""
    booking_id: str
    callback_url: Optional[str] = None


class PaystackInitPayload(BaseModel):
    """Data passed to PaystackService.initialize_payment."""
    amount: float
    email: EmailStr
    reference: str
    currency: str
    callback_url: Optional[str] = None
    payment_metadata: Optional[Dict[str, Any]] = None


class PaymentInitResponse(BaseModel):
    payment_id: str
    reference: str
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None


class WebhookEvent(BaseModel):
    """A Paystack webhook envelope."""
    event: str
    data: Dict[str, Any] = {}
