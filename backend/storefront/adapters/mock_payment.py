import time
from typing import Dict, Optional
from uuid import uuid4

from storefront.config import settings


class PaymentDeclined(Exception):
    """Raised when the payment provider refuses to start a payment."""
    pass


class MockPaymentAdapter:
    """
    Stand-in for the hosted payment page provider.

    ``initiate`` returns an approval URL the shopper is redirected to;
    ``verify`` confirms a returning payment reference.
    """

    def __init__(
        self,
        delay_ms: Optional[int] = None,
        client_url: Optional[str] = None,
        decline: bool = False,
    ):
        delay_ms = settings.PAYMENT_MOCK_DELAY_MS if delay_ms is None else delay_ms
        self.delay_seconds = delay_ms / 1000.0
        self.client_url = (client_url or settings.CLIENT_URL).rstrip("/")
        self.decline = decline  # simulate a provider that refuses every payment

    def initiate(self, order_number: str, amount: float, email: str) -> Dict:
        """
        Args:
            order_number: Merchant reference shown on the payment page.
            amount: Amount to collect; must be positive.
            email: Payer email.

        Returns:
            {"reference", "approval_url", "amount"}

        Raises:
            PaymentDeclined: amount is not payable or the adapter is set to decline.
        """
        time.sleep(self.delay_seconds)
        if self.decline:
            raise PaymentDeclined("Simulated forced decline")
        if amount <= 0:
            raise PaymentDeclined("Nothing to pay for this order")
        reference = f"PAY-{uuid4().hex[:12].upper()}"
        return {
            "reference": reference,
            "approval_url": f"{self.client_url}/shop/payment-return?reference={reference}&order={order_number}",
            "amount": round(amount, 2),
            "email": email,
        }

    def verify(self, reference: Optional[str]) -> bool:
        time.sleep(self.delay_seconds)
        return bool(reference) and reference.startswith("PAY-")

    def health_check(self) -> bool:
        return True
