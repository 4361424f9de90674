from uuid import uuid4
from core.entities.user import User
from core.services.payment_provider import Charge, PaymentProvider


class StubPaymentProvider(PaymentProvider):
    """Local sandbox: a fake charge that only gets paid through the webhook"""
    name = "stub"

    def create_charge(self, user: User, amount_cents: int, description: str, callback_url: str) -> Charge:
        charge_id = f"stub-{uuid4()}"
        return Charge(
            charge_id=charge_id,
            amount_cents=int(amount_cents),
            provider=self.name,
            raw={
                "id": charge_id,
                "amount": amount_cents / 100,
                "description": description,
                "callback_url": callback_url,
                "status": "pending",
            },
        )
