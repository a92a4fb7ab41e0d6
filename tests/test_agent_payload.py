"""
Tests for agent / proxy payload parsing.

Test plan:
- Signatures: hex string lowercased, bytes, int list, index-keyed map
  (out of order keys sorted), gapped map rejected, byte out of range
  rejected, unsupported shape rejected
- Agent payload: claim + claimSignature, signedClaim.claim nesting,
  top-level provider/parameters fallback, nested claim fields preferred
  over top-level ones, numeric strings accepted,
  missing claim / owner / signatures rejected, result encodes
- Proxy payload: claimData shape parsed, missing claimData rejected
"""

import pytest

from peerproof.codec.agent_payload import parse_agent_proof, parse_proxy_proof, to_hex_signature
from peerproof.codec.proof import encode_single
from peerproof.errors import ValidationError

IDENTIFIER = "0x" + "AA" * 32
OWNER = "0x" + "Bc" * 20


def _claim(**overrides: object) -> dict[str, object]:
    claim: dict[str, object] = {
        "provider": "http",
        "parameters": '{"url":"https://wise.com"}',
        "context": '{"contextAddress":"0x0"}',
        "identifier": IDENTIFIER,
        "owner": OWNER,
        "timestampS": 1_700_000_000,
        "epoch": 1,
    }
    claim.update(overrides)
    return claim


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


class TestToHexSignature:
    def test_hex_string_lowercased(self) -> None:
        assert to_hex_signature("0xABcd") == "0xabcd"

    def test_bytes(self) -> None:
        assert to_hex_signature(b"\x01\x02") == "0x0102"
        assert to_hex_signature(bytearray(b"\xff")) == "0xff"

    def test_int_list(self) -> None:
        assert to_hex_signature([1, 2, 255]) == "0x0102ff"

    def test_index_map_sorted_by_index(self) -> None:
        assert to_hex_signature({"1": 2, "0": 1, "2": 3}) == "0x010203"

    def test_index_map_with_gap_rejected(self) -> None:
        with pytest.raises(ValidationError, match="contiguous"):
            to_hex_signature({"0": 1, "2": 3})

    def test_index_map_non_numeric_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            to_hex_signature({"a": 1})

    @pytest.mark.parametrize("bad", [[256], [-1], [True]])
    def test_byte_out_of_range_rejected(self, bad: list[object]) -> None:
        with pytest.raises(ValidationError):
            to_hex_signature(bad)

    @pytest.mark.parametrize("bad", [12.5, None, object()])
    def test_unsupported_shape_rejected(self, bad: object) -> None:
        with pytest.raises(ValidationError, match="unsupported signature shape"):
            to_hex_signature(bad)

    def test_invalid_hex_rejected(self) -> None:
        with pytest.raises(ValidationError):
            to_hex_signature("0xabc")


# ---------------------------------------------------------------------------
# Agent payload
# ---------------------------------------------------------------------------


class TestParseAgentProof:
    def test_claim_with_claim_signature(self) -> None:
        proof = parse_agent_proof({"claim": _claim(), "signatures": {"claimSignature": [1, 2, 3]}})
        assert proof.claim_info.provider == "http"
        assert proof.signed_claim.claim.identifier == IDENTIFIER.lower()
        assert proof.signed_claim.claim.owner == OWNER.lower()
        assert proof.signed_claim.claim.timestamp_s == 1_700_000_000
        assert proof.signed_claim.signatures == ("0x010203",)
        assert proof.is_appclip_proof is False

    def test_signed_claim_nesting(self) -> None:
        payload = {"signedClaim": {"claim": _claim(), "signatures": ["0x" + "11" * 65]}}
        proof = parse_agent_proof(payload)
        assert proof.signed_claim.signatures == ("0x" + "11" * 65,)

    def test_top_level_text_fields_fallback(self) -> None:
        claim = _claim()
        del claim["provider"]
        del claim["parameters"]
        payload = {"claim": claim, "provider": "http-top", "parameters": "{}", "signatures": ["0x01"]}
        proof = parse_agent_proof(payload)
        assert proof.claim_info.provider == "http-top"
        assert proof.claim_info.parameters == "{}"

    def test_signed_claim_fields_win_over_top_level(self) -> None:
        payload = {
            "signedClaim": {"claim": _claim(), "signatures": ["0x01"]},
            "provider": "http-top",
            "context": "{}",
        }
        proof = parse_agent_proof(payload)
        assert proof.claim_info.provider == "http"
        assert proof.claim_info.context == '{"contextAddress":"0x0"}'

    def test_numeric_strings_accepted(self) -> None:
        proof = parse_agent_proof({"claim": _claim(timestampS="1700000001", epoch="0x2"), "signatures": ["0x01"]})
        assert proof.signed_claim.claim.timestamp_s == 1_700_000_001
        assert proof.signed_claim.claim.epoch == 2

    def test_non_numeric_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError, match="timestampS"):
            parse_agent_proof({"claim": _claim(timestampS="soon"), "signatures": ["0x01"]})

    def test_missing_claim_rejected(self) -> None:
        with pytest.raises(ValidationError, match="no claim"):
            parse_agent_proof({"signatures": ["0x01"]})

    def test_missing_owner_rejected(self) -> None:
        claim = _claim()
        del claim["owner"]
        with pytest.raises(ValidationError, match="owner"):
            parse_agent_proof({"claim": claim, "signatures": ["0x01"]})

    def test_empty_signatures_rejected(self) -> None:
        with pytest.raises(ValidationError, match="no signatures"):
            parse_agent_proof({"claim": _claim(), "signatures": []})

    def test_not_an_object_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_agent_proof("proof")

    def test_parsed_proof_encodes(self) -> None:
        proof = parse_agent_proof({"claim": _claim(), "signatures": {"claimSignature": "0x" + "ab" * 65}})
        assert encode_single(proof).startswith("0x")


# ---------------------------------------------------------------------------
# Proxy payload
# ---------------------------------------------------------------------------


class TestParseProxyProof:
    def test_claim_data_shape(self) -> None:
        payload = {"claimData": _claim(context=None), "signatures": ["0xAB", [1]]}
        proof = parse_proxy_proof(payload)
        assert proof.claim_info.context == ""
        assert proof.signed_claim.signatures == ("0xab", "0x01")
        assert proof.signed_claim.claim.epoch == 1

    def test_missing_claim_data_rejected(self) -> None:
        with pytest.raises(ValidationError, match="claimData"):
            parse_proxy_proof({"claim": _claim(), "signatures": ["0x01"]})
