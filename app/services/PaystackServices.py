# PaystackService for booking checkout and webhook authentication
import hashlib
import hmac
import httpx
from typing import Dict, Any, Optional
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)


class PaystackError(Exception):
    """Raised when the Paystack API rejects or fails a request."""


class PaystackService:

    @classmethod
    def _base_url(cls) -> str:
        return settings.PAYSTACK_BASE_URL.rstrip("/")

    @classmethod
    def _is_test_mode(cls) -> bool:
        """Check if we're in test mode based on secret key"""
        return settings.PAYSTACK_SECRET_KEY.startswith('sk_test_')

    @classmethod
    async def _make_request(cls, method: str, endpoint: str, data: Dict = None, params: Dict = None) -> Dict[str, Any]:
        """Make HTTP request to Paystack API"""
        headers = {
            "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json"
        }

        if cls._is_test_mode():
            logger.info(f"Paystack API call in TEST mode: {method} {endpoint}")

        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                if method.upper() == "POST":
                    response = await client.post(f"{cls._base_url()}{endpoint}", json=data, headers=headers)
                elif method.upper() == "GET":
                    response = await client.get(f"{cls._base_url()}{endpoint}", headers=headers, params=params)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")

                logger.info(f"Paystack API response status: {response.status_code}")

                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                logger.error(f"Paystack API error: {e.response.status_code} - {e.response.text}")
                raise PaystackError(f"Paystack API error: {e.response.text}") from e
            except httpx.HTTPError as e:
                logger.error(f"Paystack request failed: {str(e)}")
                raise PaystackError(f"Paystack request failed: {str(e)}") from e

    @classmethod
    async def initialize_payment(cls, data) -> Dict[str, Any]:
        """Initialize payment with Paystack"""
        amount_in_subunits = int(round(data.amount * 100))
        payload = {
            "amount": amount_in_subunits,
            "email": data.email,
            "currency": data.currency,
            "reference": data.reference,
            "metadata": data.payment_metadata or {},
        }
        if data.callback_url:
            payload["callback_url"] = data.callback_url

        response = await cls._make_request("POST", "/transaction/initialize", payload)

        if not response.get("status"):
            raise PaystackError(response.get("message", "Payment initialization failed"))

        return {
            "status": True,
            "message": response.get("message"),
            "data": response.get("data", {})
        }

    @classmethod
    async def verify_transaction(cls, reference: str) -> Dict[str, Any]:
        """Verify transaction with Paystack"""
        response = await cls._make_request("GET", f"/transaction/verify/{reference}")

        if not response.get("status"):
            raise PaystackError(response.get("message", "Transaction verification failed"))

        return response.get("data", {})

    @staticmethod
    def compute_signature(payload: bytes, secret: Optional[str] = None) -> str:
        """HMAC-SHA512 of the raw request body, keyed by the secret key."""
        secret = secret or settings.PAYSTACK_SECRET_KEY
        return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: Optional[str]) -> bool:
        """Constant-time check of the x-paystack-signature header."""
        if not signature:
            return False
        return hmac.compare_digest(cls.compute_signature(payload), signature)
