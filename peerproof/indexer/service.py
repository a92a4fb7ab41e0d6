"""
IndexerService — typed reads over the indexer for intent resolution.

Implements ``IndexedIntentReader``: the intent's minimal fields, then
the payment methods registered on its deposit. BigInt columns arrive
as decimal strings and are converted to ``int`` here.
"""

from __future__ import annotations

from typing import Any

from peerproof.errors import ValidationError
from peerproof.indexer.client import IndexerClient
from peerproof.intent.views import DepositPaymentMethod, IndexedIntent

INTENT_BY_HASH_QUERY = """
  query GetIntentByHash($intentHash: String!) {
    Intent(where: { intentHash: { _ilike: $intentHash } }, limit: 1) {
      intentHash
      depositId
      amount
      fiatCurrency
      conversionRate
      paymentMethodHash
      signalTimestamp
    }
  }
"""

DEPOSIT_PAYMENT_METHODS_QUERY = """
  query GetDepositPaymentMethods($depositId: String!) {
    DepositPaymentMethod(where: { depositId: { _eq: $depositId } }) {
      depositId
      paymentMethodHash
      payeeDetailsHash
    }
  }
"""


def _to_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"indexer field {field} is not an integer: {value!r}", field=field) from e


def _intent_from_row(row: dict[str, Any]) -> IndexedIntent:
    return IndexedIntent(
        intent_hash=str(row.get("intentHash") or ""),
        amount=_to_int(row.get("amount"), "amount"),
        fiat_currency=str(row.get("fiatCurrency") or ""),
        conversion_rate=_to_int(row.get("conversionRate"), "conversionRate"),
        payment_method_hash=str(row.get("paymentMethodHash") or ""),
        deposit_id=str(row.get("depositId") or ""),
        signal_timestamp_s=_to_int(row.get("signalTimestamp"), "signalTimestamp"),
    )


class IndexerService:
    """Indexer-backed reads used as the resolver's fallback source."""

    def __init__(self, client: IndexerClient) -> None:
        self._client = client

    async def fetch_intent(self, intent_hash: str) -> IndexedIntent | None:
        data = await self._client.query(INTENT_BY_HASH_QUERY, {"intentHash": intent_hash})
        rows = data.get("Intent") or []
        if not rows:
            return None
        return _intent_from_row(rows[0])

    async def fetch_deposit_payment_methods(self, deposit_id: str) -> list[DepositPaymentMethod]:
        data = await self._client.query(DEPOSIT_PAYMENT_METHODS_QUERY, {"depositId": deposit_id})
        return [
            DepositPaymentMethod(
                payment_method_hash=str(row.get("paymentMethodHash") or ""),
                payee_details_hash=str(row.get("payeeDetailsHash") or ""),
            )
            for row in data.get("DepositPaymentMethod") or []
        ]
