"""
Payment validation collaborator used by order creation.
"""

import sys
import time
from typing import Optional

from zook_admin.models import PaymentResult


class PaymentGateway:
    """
    Default gateway: approves every payment and issues a transaction id.
    Swap in a real provider by passing another object with the same
    validate_payment signature to create_app().
    """

    def validate_payment(self, amount: float, payment_option_id: Optional[str],
                         user_id: str, order_id: str) -> PaymentResult:
        try:
            return self._charge(amount, payment_option_id, user_id, order_id)
        except Exception as e:
            print(f"[WARN] Payment validation failed for {order_id}: {e}", file=sys.stderr)
            return PaymentResult(
                success=False,
                message=str(e) or "Payment validation failed",
                status="not_paid",
            )

    def _charge(self, amount, payment_option_id, user_id, order_id) -> PaymentResult:
        return PaymentResult(
            success=True,
            message="Payment validated successfully",
            status="paid",
            transaction_id=f"TRANS_{int(time.time() * 1000)}",
        )
