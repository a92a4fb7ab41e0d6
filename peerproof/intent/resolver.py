"""
IntentResolver — reconstruct fulfillment inputs for an intent.

Order of sources:

    1. Primary (on-chain view), when configured. Accepted only if the
       intent's payment-method hash matches one of the deposit's
       registered methods; that method's payee-details hash is used.
    2. Secondary (indexed store). Intent first, then the deposit's
       payment methods, matched the same way.

A primary that is missing, raises, or yields no match falls through to
the secondary. A secondary that raises or yields no match ends
resolution with NotFoundError. Hash comparison ignores case.
"""

from __future__ import annotations

import logging
from typing import Iterable

from peerproof.errors import NotFoundError, PeerproofError
from peerproof.intent.views import (
    DepositPaymentMethod,
    FulfillmentInputs,
    IndexedIntentReader,
    IntentViewReader,
)

logger = logging.getLogger(__name__)


def match_payee_details(methods: Iterable[DepositPaymentMethod], payment_method_hash: str) -> str | None:
    """Payee-details hash of the method whose hash equals ``payment_method_hash``."""
    wanted = payment_method_hash.lower()
    for method in methods:
        if method.payment_method_hash.lower() == wanted:
            return method.payee_details_hash
    return None


class IntentResolver:
    """Resolve FulfillmentInputs with primary-then-secondary sourcing.

    Args:
        secondary: Indexed-store reader, always consulted on fallback.
        primary: Optional on-chain view reader, tried first.
    """

    def __init__(
        self,
        secondary: IndexedIntentReader,
        primary: IntentViewReader | None = None,
    ) -> None:
        self._secondary = secondary
        self._primary = primary

    async def resolve(self, intent_hash: str) -> FulfillmentInputs:
        """Resolve the inputs needed to fulfill ``intent_hash``.

        Raises:
            NotFoundError: Neither source produced a matching
                payee-details hash.
        """
        if self._primary is not None:
            try:
                inputs = await self._from_primary(intent_hash)
            except Exception as e:
                logger.warning("primary intent read failed for %s, falling back: %s", intent_hash, e)
            else:
                if inputs is not None:
                    return inputs
                logger.debug("primary intent read had no match for %s", intent_hash)

        try:
            inputs = await self._from_secondary(intent_hash)
        except Exception as e:
            cause = e.error_code if isinstance(e, PeerproofError) else type(e).__name__
            raise NotFoundError(
                f"Unable to resolve intent {intent_hash}: {e}",
                details={"intent_hash": intent_hash, "cause": str(cause)},
            ) from e
        if inputs is None:
            raise NotFoundError(
                f"No matching payee details for intent {intent_hash}",
                details={"intent_hash": intent_hash},
            )
        return inputs

    async def _from_primary(self, intent_hash: str) -> FulfillmentInputs | None:
        assert self._primary is not None
        view = await self._primary.read_intent_view(intent_hash)
        if view is None:
            return None
        payee = match_payee_details(view.payment_methods, view.payment_method_hash)
        if payee is None:
            return None
        return FulfillmentInputs(
            amount=view.amount,
            fiat_currency=view.fiat_currency,
            conversion_rate=view.conversion_rate,
            payee_details_hash=payee,
            payment_method_hash=view.payment_method_hash,
            intent_timestamp_ms=view.timestamp_s * 1000,
        )

    async def _from_secondary(self, intent_hash: str) -> FulfillmentInputs | None:
        intent = await self._secondary.fetch_intent(intent_hash)
        if intent is None:
            return None
        methods = await self._secondary.fetch_deposit_payment_methods(intent.deposit_id)
        payee = match_payee_details(methods, intent.payment_method_hash)
        if payee is None:
            return None
        return FulfillmentInputs(
            amount=intent.amount,
            fiat_currency=intent.fiat_currency,
            conversion_rate=intent.conversion_rate,
            payee_details_hash=payee,
            payment_method_hash=intent.payment_method_hash,
            intent_timestamp_ms=intent.signal_timestamp_s * 1000,
        )
