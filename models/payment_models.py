from pydantic import BaseModel


class PaymentIntentResponse(BaseModel):
    request_id: str
    payment_intent_id: str
    client_secret: str
    amount: int
    currency: str
