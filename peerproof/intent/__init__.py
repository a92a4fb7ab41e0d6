"""Intent resolution: fulfillment inputs from on-chain or indexed sources."""

from peerproof.intent.resolver import IntentResolver, match_payee_details
from peerproof.intent.views import (
    DepositPaymentMethod,
    FulfillmentInputs,
    IndexedIntent,
    IndexedIntentReader,
    IntentView,
    IntentViewReader,
)

__all__ = [
    "DepositPaymentMethod",
    "FulfillmentInputs",
    "IndexedIntent",
    "IndexedIntentReader",
    "IntentResolver",
    "IntentView",
    "IntentViewReader",
    "match_payee_details",
]
