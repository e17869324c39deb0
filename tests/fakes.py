"""
In-memory stand-ins for the external collaborators.
"""
import itertools


class FakeItemClient:
    def __init__(self):
        self.items = {}
        self.batch_calls = 0

    def add(
        self,
        item_id: int,
        title: str,
        price,
        owner_id: int,
        approval_status: str = "approved",
        availability_status: str = "available",
        image: str | None = None,
    ):
        self.items[item_id] = {
            "id": item_id,
            "title": title,
            "price": price,
            "owner_id": owner_id,
            "approval_status": approval_status,
            "availability_status": availability_status,
            "image": image,
        }

    def lookup(self, item_id: int):
        record = self.items.get(item_id)
        return dict(record) if record else None

    def lookup_many(self, item_ids):
        self.batch_calls += 1
        return {i: dict(self.items[i]) for i in item_ids if i in self.items}


class FakeLockService:
    def __init__(self):
        self.held = {}
        self.released = []
        self._tokens = itertools.count(1)

    def acquire_checkout_lock(self, buyer_id: int):
        if buyer_id in self.held:
            return None
        token = f"token-{next(self._tokens)}"
        self.held[buyer_id] = token
        return token

    def release_checkout_lock(self, buyer_id: int, token: str) -> bool:
        self.released.append(buyer_id)
        if self.held.get(buyer_id) == token:
            del self.held[buyer_id]
            return True
        return False


class FakeGateway:
    def __init__(self):
        self.intents = {}
        self.confirm_calls = []
        self._ids = itertools.count(1)

    def create_intent(self, amount, currency: str) -> str:
        reference = f"pi_{next(self._ids)}"
        self.intents[reference] = {"amount": amount, "currency": currency, "status": "succeeded"}
        return reference

    def confirm(self, reference: str) -> str:
        self.confirm_calls.append(reference)
        intent = self.intents.get(reference)
        return intent["status"] if intent else "unknown"


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, user_id, kind, title, message, link=None):
        self.sent.append({"user_id": user_id, "kind": kind, "title": title, "message": message, "link": link})

    def titles_for(self, user_id):
        return [n["title"] for n in self.sent if n["user_id"] == user_id]
