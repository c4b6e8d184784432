"""Tests for the delivery code codec."""
from datetime import datetime

import pytest

from ledger_engine.domain.delivery.codec import (
    DecodedToken,
    MalformedToken,
    decode_token,
    encode_token,
    from_ticks,
    to_ticks,
)

Y2K_TICKS = 630822816000000000  # 2000-01-01T00:00:00 as printed by the mobile clients


class TestEncode:
    def test_format_is_prefix_id_product_ticks(self):
        code = encode_token("tok-1", "prod-9", datetime(2000, 1, 1))
        assert code == f"KAMPAY|tok-1|prod-9|{Y2K_TICKS}"

    def test_custom_prefix(self):
        code = encode_token("t", "p", datetime(2000, 1, 1), prefix="CAMPUS")
        assert code.startswith("CAMPUS|t|p|")

    def test_ticks_keep_microseconds(self):
        moment = datetime(2026, 3, 1, 12, 30, 15, 123456)
        assert from_ticks(to_ticks(moment)) == moment


class TestDecode:
    def test_decodes_what_encode_produced(self):
        created = datetime(2026, 3, 1, 12, 0, 0)
        result = decode_token(encode_token("tok-1", "prod-9", created))
        assert result == DecodedToken(token_id="tok-1", product_id="prod-9", created_at=created)

    def test_extra_trailing_fields_are_ignored(self):
        result = decode_token(f"KAMPAY|tok|prod|{Y2K_TICKS}|extra|fields")
        assert isinstance(result, DecodedToken)
        assert result.created_at == datetime(2000, 1, 1)

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            42,
            b"KAMPAY|a|b|1",
            "",
            "OTHER|a|b|1",
            "KAMPAYa|b|1",
            "kampay|a|b|1",
            "KAMPAY|a|b",
            "KAMPAY|a",
            "KAMPAY||b|1",
            "KAMPAY|a||1",
            "KAMPAY|a|b|",
            "KAMPAY|a|b|-5",
            "KAMPAY|a|b|12.5",
            "KAMPAY|a|b|１２３",
            "KAMPAY|a|b|99999999999999999999999",
        ],
    )
    def test_rejects_malformed_input_without_raising(self, raw):
        assert isinstance(decode_token(raw), MalformedToken)

    def test_failure_carries_a_reason(self):
        result = decode_token("KAMPAY|only-one")
        assert isinstance(result, MalformedToken)
        assert "3 fields" in result.reason

    def test_prefix_must_match_configured_prefix(self):
        code = encode_token("t", "p", datetime(2000, 1, 1), prefix="CAMPUS")
        assert isinstance(decode_token(code), MalformedToken)
        assert isinstance(decode_token(code, prefix="CAMPUS"), DecodedToken)
