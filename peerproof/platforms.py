"""
Static catalog of payment platforms the proof agent knows how to prove.

Each platform has one or more variants. A variant tells the agent which
action to open (``action_identifier``), which concrete site it targets
(``variant_identifier``), and how many sub-proofs one payment needs.
Variant 0 is the default; later variants (e.g. Zelle routed through a
specific bank) may need more sub-proofs.

Unknown platforms and out-of-range variants are configuration errors.
"""

from __future__ import annotations

from dataclasses import dataclass

from peerproof.errors import ValidationError

DEFAULT_MIN_AGENT_VERSION = "0.1.31"


@dataclass(frozen=True)
class PlatformMethod:
    """One provable route for a platform."""

    action_identifier: str
    variant_identifier: str
    required_proof_count: int = 1
    min_agent_version: str = DEFAULT_MIN_AGENT_VERSION

    def __post_init__(self) -> None:
        if self.required_proof_count < 1:
            raise ValidationError(
                f"required_proof_count must be >= 1, got {self.required_proof_count}",
                field="required_proof_count",
            )


def _single(platform: str) -> tuple[PlatformMethod, ...]:
    return (PlatformMethod(f"transfer_{platform}", platform),)


PLATFORM_CATALOG: dict[str, tuple[PlatformMethod, ...]] = {
    "wise": _single("wise"),
    "venmo": _single("venmo"),
    "revolut": _single("revolut"),
    "cashapp": _single("cashapp"),
    "mercadopago": _single("mercadopago"),
    "paypal": _single("paypal"),
    "monzo": _single("monzo"),
    "zelle": (
        PlatformMethod("transfer_zelle", "bankofamerica", 1),
        PlatformMethod("transfer_zelle", "chase", 2),
        PlatformMethod("transfer_zelle", "citi", 1),
    ),
}


def platforms() -> list[str]:
    """Supported platform identifiers, sorted."""
    return sorted(PLATFORM_CATALOG)


def variants(platform: str) -> tuple[PlatformMethod, ...]:
    methods = PLATFORM_CATALOG.get(platform)
    if methods is None:
        raise ValidationError(f"unsupported platform: {platform}", field="platform")
    return methods


def resolve(platform: str, variant_index: int | None = None) -> PlatformMethod:
    """Look up the method for ``platform``; variant defaults to 0."""
    methods = variants(platform)
    idx = 0 if variant_index is None else variant_index
    if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < len(methods):
        raise ValidationError(
            f"invalid variant {variant_index!r} for platform {platform}",
            field="variant_index",
            details={"platform": platform, "variants": len(methods)},
        )
    return methods[idx]


def _version_tuple(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in version.strip().lstrip("v").split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


def is_version_at_least(version: str, minimum: str) -> bool:
    """Dotted-version comparison, missing components count as 0."""
    have, need = _version_tuple(version), _version_tuple(minimum)
    width = max(len(have), len(need))
    return have + (0,) * (width - len(have)) >= need + (0,) * (width - len(need))
