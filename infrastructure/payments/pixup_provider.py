import logging
from functools import lru_cache
from typing import Optional

import httpx

from config.settings import settings
from core.entities.user import User
from core.services.payment_provider import Charge, PaymentProvider, PaymentProviderError

logger = logging.getLogger(__name__)


class PixUpPaymentProvider(PaymentProvider):
    """Pix charges through the PixUp API (client credentials + POST /charges)"""
    name = "pixup"

    def __init__(self, base_url: str, client_id: str, client_secret: str,
                 timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.client = client or httpx.Client(timeout=timeout)

    def _get_token(self) -> str:
        if not self.client_id or not self.client_secret:
            raise PaymentProviderError("PixUp creds not configured")
        try:
            r = self.client.post(
                f"{self.base_url}/oauth/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"PixUp token request failed: {e}")
        if r.is_error:
            raise PaymentProviderError("PixUp token error", detail=r.text)
        token = r.json().get("access_token")
        if not token:
            raise PaymentProviderError("PixUp token response without access_token", detail=r.text)
        return token

    def create_charge(self, user: User, amount_cents: int, description: str, callback_url: str) -> Charge:
        token = self._get_token()
        payload = {
            "amount": amount_cents / 100,
            "description": description,
            "callback_url": callback_url,
        }
        try:
            r = self.client.post(
                f"{self.base_url}/charges",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"PixUp create charge request failed: {e}")
        try:
            data = r.json()
        except ValueError:
            data = {"raw": r.text}
        if r.is_error:
            raise PaymentProviderError("pixup create charge failed", detail=data)

        charge_id = data.get("id") or data.get("charge_id") or data.get("txid")
        if not charge_id:
            raise PaymentProviderError("pixup charge response without id", detail=data)
        logger.info("pixup charge %s created for user %s (%s cents)", charge_id, user.id, amount_cents)
        return Charge(charge_id=str(charge_id), amount_cents=int(amount_cents), provider=self.name, raw=data)

    def close(self) -> None:
        self.client.close()


# one pooled client per process
@lru_cache(maxsize=1)
def build_pixup_provider() -> PixUpPaymentProvider:
    return PixUpPaymentProvider(
        base_url=settings.PIXUP_API_URL,
        client_id=settings.PIXUP_CLIENT_ID,
        client_secret=settings.PIXUP_CLIENT_SECRET,
        timeout=settings.PIXUP_TIMEOUT_SECONDS,
    )


def close_pixup_provider() -> None:
    if build_pixup_provider.cache_info().currsize:
        build_pixup_provider().close()
    build_pixup_provider.cache_clear()
