"""
Intent views — the records IntentResolver reads and the one it produces.

Two readers feed the resolver:

    IntentViewReader (primary, on-chain batch read)
        One call returns the intent together with its deposit's
        registered payment methods.

    IndexedIntentReader (secondary, indexed store)
        The intent's minimal fields first, then the deposit's payment
        methods in a second call.

Both are protocols so the chain client and the indexer stay outside
this package's dependency graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class DepositPaymentMethod:
    """One payment method registered on a deposit."""

    payment_method_hash: str
    payee_details_hash: str


@dataclass(frozen=True)
class IntentView:
    """On-chain intent with its deposit's registered payment methods.

    Attributes:
        intent_hash: 0x intent hash.
        amount: Token amount in base units.
        fiat_currency: 0x bytes32 currency code.
        conversion_rate: Fixed-point rate as stored on chain.
        payment_method_hash: 0x bytes32 of the method the intent uses.
        timestamp_s: Signal time, epoch seconds.
        payment_methods: The deposit's registered methods.
    """

    intent_hash: str
    amount: int
    fiat_currency: str
    conversion_rate: int
    payment_method_hash: str
    timestamp_s: int
    payment_methods: tuple[DepositPaymentMethod, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class IndexedIntent:
    """Minimal intent fields as the indexed store reports them."""

    intent_hash: str
    amount: int
    fiat_currency: str
    conversion_rate: int
    payment_method_hash: str
    deposit_id: str
    signal_timestamp_s: int


@dataclass(frozen=True)
class FulfillmentInputs:
    """Everything needed to fulfill one intent. Immutable once returned."""

    amount: int
    fiat_currency: str
    conversion_rate: int
    payee_details_hash: str
    payment_method_hash: str
    intent_timestamp_ms: int


@runtime_checkable
class IntentViewReader(Protocol):
    async def read_intent_view(self, intent_hash: str) -> IntentView | None:
        """Return the intent and its deposit, or None when unknown."""
        ...


@runtime_checkable
class IndexedIntentReader(Protocol):
    async def fetch_intent(self, intent_hash: str) -> IndexedIntent | None:
        """Return the indexed intent, or None when the store has none."""
        ...

    async def fetch_deposit_payment_methods(self, deposit_id: str) -> Sequence[DepositPaymentMethod]:
        """Return the deposit's registered payment methods."""
        ...
