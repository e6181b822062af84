"""Tests for vendor request signing."""

import hashlib
from datetime import datetime, timezone

from okazje.vendors.utils.signing import aws_sigv4_headers, top_md5_signature

SIGNED_AT = datetime(2026, 3, 1, 8, 30, 15, tzinfo=timezone.utc)


def _sign(**overrides):
    values = {
        "access_key": "AKIDEXAMPLE",
        "secret_key": "secret",
        "region": "eu-west-1",
        "service": "ProductAdvertisingAPI",
        "host": "webservices.amazon.pl",
        "path": "/paapi5/searchitems",
        "target": "com.amazon.paapi5.v1.ProductAdvertisingAPIv1.SearchItems",
        "payload": '{"Keywords":"kawa"}',
        "now": SIGNED_AT,
    }
    values.update(overrides)
    return aws_sigv4_headers(**values)


class TestTopSignature:
    def test_sorted_params_wrapped_in_secret(self):
        params = {"method": "aliexpress.product.search", "app_key": "123", "q": "kawa"}

        expected = hashlib.md5(
            "s3cretapp_key123methodaliexpress.product.searchqkawas3cret".encode("utf-8")
        ).hexdigest().upper()
        assert top_md5_signature(params, "s3cret") == expected

    def test_sign_and_empty_values_ignored(self):
        base = {"app_key": "123", "q": "kawa"}
        noisy = dict(base, sign="OLD", category="", page=None)

        assert top_md5_signature(noisy, "s3cret") == top_md5_signature(base, "s3cret")

    def test_upper_case_hex(self):
        signature = top_md5_signature({"a": "1"}, "x")

        assert len(signature) == 32
        assert signature == signature.upper()


class TestAwsSigV4:
    def test_headers(self):
        headers = _sign()

        assert headers["X-Amz-Date"] == "20260301T083015Z"
        assert headers["Host"] == "webservices.amazon.pl"
        assert headers["Content-Encoding"] == "amz-1.0"
        assert headers["X-Amz-Target"].endswith(".SearchItems")
        assert headers["Authorization"].startswith(
            "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20260301/eu-west-1/ProductAdvertisingAPI/aws4_request, "
            "SignedHeaders=content-encoding;content-type;host;x-amz-date;x-amz-target, Signature="
        )

    def test_signature_is_deterministic(self):
        assert _sign()["Authorization"] == _sign()["Authorization"]

    def test_signature_covers_payload_and_secret(self):
        original = _sign()["Authorization"]

        assert _sign(payload='{"Keywords":"herbata"}')["Authorization"] != original
        assert _sign(secret_key="other")["Authorization"] != original
