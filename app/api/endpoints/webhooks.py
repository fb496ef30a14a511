"""Payment processor webhook."""

from fastapi import APIRouter, Request, status

from app.dependencies import Payments

router = APIRouter()


@router.post(
    "/webhook",
    status_code=status.HTTP_200_OK,
    summary="Stripe webhook",
)
async def stripe_webhook(request: Request, payments: Payments) -> dict[str, bool]:
    """
    Receive a Stripe event.

    The raw body is verified against the ``Stripe-Signature`` header before
    the event is handled.
    """
    payload = await request.body()
    event = payments.construct_event(payload, request.headers.get("stripe-signature"))
    await payments.handle_event(event)
    return {"received": True}
