"""Stripe payment collaborator."""

import asyncio
from typing import Any

import stripe
import structlog

from app.config import Settings, settings
from app.core.exceptions import SignatureException
from app.core.resilience import guarded_call
from app.schemas.appointments import PaymentIntentReference

logger = structlog.get_logger(__name__)

PAYMENT_ERRORS: tuple[type[BaseException], ...] = (stripe.StripeError, OSError)


class PaymentService:
    """Creates payment intents for prepaid bookings and verifies webhooks."""

    def __init__(self, secret_key: str, webhook_secret: str, timeout: float):
        """Initialize with Stripe credentials."""
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "PaymentService":
        """Build the service from application settings."""
        return cls(
            secret_key=config.stripe_secret_key,
            webhook_secret=config.stripe_webhook_secret,
            timeout=config.external_call_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Whether payment intents can be created."""
        return bool(self.secret_key)

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntentReference:
        """
        Create a payment intent.

        Args:
            amount_cents: Amount in minor currency units
            currency: ISO currency code
            metadata: Reconciliation tags stored on the intent

        Returns:
            Reference to the created intent

        Raises:
            DependencyException: If Stripe fails or times out
        """
        intent = await guarded_call(
            asyncio.to_thread(
                stripe.PaymentIntent.create,
                api_key=self.secret_key,
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
            ),
            dependency="payments",
            timeout=self.timeout,
            errors=PAYMENT_ERRORS,
        )
        logger.info("payment_intent_created", payment_intent_id=intent.id, amount=amount_cents)
        return PaymentIntentReference(
            id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
        )

    async def cancel_payment_intent(self, payment_intent_id: str) -> None:
        """
        Cancel a payment intent that will not be used.

        Raises:
            DependencyException: If Stripe fails or times out
        """
        await guarded_call(
            asyncio.to_thread(
                stripe.PaymentIntent.cancel,
                payment_intent_id,
                api_key=self.secret_key,
            ),
            dependency="payments",
            timeout=self.timeout,
            errors=PAYMENT_ERRORS,
        )
        logger.info("payment_intent_cancelled", payment_intent_id=payment_intent_id)

    def construct_event(self, payload: bytes, signature: str | None) -> Any:
        """
        Verify and parse a webhook payload.

        Raises:
            SignatureException: If the signature or payload is invalid
        """
        if not self.webhook_secret:
            raise SignatureException("Webhook signing secret is not configured")
        if not signature:
            raise SignatureException("Missing Stripe-Signature header")

        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("stripe_webhook_signature_invalid", error=str(e))
            raise SignatureException(f"Webhook Error: {e}") from e
        except ValueError as e:
            logger.warning("stripe_webhook_payload_invalid", error=str(e))
            raise SignatureException(f"Webhook Error: {e}") from e

    async def handle_event(self, event: Any) -> None:
        """Record a verified webhook event."""
        event_type = event["type"]
        if event_type == "payment_intent.succeeded":
            intent = event["data"]["object"]
            logger.info("payment_intent_succeeded", payment_intent_id=intent["id"])
        else:
            logger.debug("stripe_event_ignored", event_type=event_type)
