import os
from typing import Any, Dict

import stripe
from fastapi.concurrency import run_in_threadpool

from logging_config import get_logger

logger = get_logger(__name__)

stripe.api_key = os.getenv("STRIPE_SECRET_KEY")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")

# Intent states in which the borrower has to start over with a new payment
FAILED_INTENT_STATUSES = {"canceled", "requires_payment_method"}


class PaymentError(Exception):
    pass


def to_minor_units(amount: float) -> int:
    """Stripe takes amounts in cents."""
    return int(round(amount * 100))


class PaymentService:
    def __init__(self, currency: str = PAYMENT_CURRENCY):
        self.currency = currency

    async def create_payment_intent(self, request_id: str, total_cost: float) -> Dict[str, Any]:
        """Create a Stripe PaymentIntent for an accepted borrow request"""
        amount = to_minor_units(total_cost)
        if amount <= 0:
            raise PaymentError("Nothing to pay for this request")
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.create,
                amount=amount,
                currency=self.currency,
                metadata={"borrow_request_id": request_id},
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe rejected payment intent for request {request_id}: {e}")
            raise PaymentError(str(e)) from e

        logger.info(f"Created payment intent {intent.id} for request {request_id} ({amount} {self.currency})")
        return {
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "amount": amount,
            "currency": self.currency,
        }

    async def intent_status(self, payment_intent_id: str) -> str:
        """Current Stripe status of a payment intent, e.g. succeeded or processing"""
        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.retrieve, payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Could not retrieve payment intent {payment_intent_id}: {e}")
            raise PaymentError(str(e)) from e
        return intent.status


payment_service = PaymentService()
