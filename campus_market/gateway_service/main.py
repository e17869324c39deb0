# campus_market/gateway_service/main.py
import uuid

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Payment Gateway (dev mock)")

INTENTS = {}


class IntentIn(BaseModel):
    amount: str
    currency: str


@app.post("/intents")
def create_intent(payload: IntentIn):
    reference = f"pi_{uuid.uuid4().hex[:24]}"
    INTENTS[reference] = {"reference": reference, "amount": payload.amount,
                          "currency": payload.currency, "status": "requires_payment"}
    return INTENTS[reference]


@app.post("/intents/{reference}/pay")
def pay_intent(reference: str):
    intent = INTENTS.get(reference)
    if not intent:
        raise HTTPException(status_code=404, detail="Intent not found")
    intent["status"] = "succeeded"
    return intent


@app.get("/intents/{reference}")
def get_intent(reference: str):
    intent = INTENTS.get(reference)
    if not intent:
        raise HTTPException(status_code=404, detail="Intent not found")
    return intent
