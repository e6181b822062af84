"""Request signing for vendors that accept key/secret credentials."""

import hashlib
import hmac
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def top_md5_signature(params: Dict[str, Any], app_secret: str) -> str:
    """Sign an AliExpress open-platform (TOP) request.

    ``MD5(secret + k1v1 + k2v2 + ... + secret)`` over parameters sorted by
    key, skipping ``sign`` itself and empty values. Returned as upper-case hex.
    """
    sign_string = app_secret
    for key, value in sorted(params.items()):
        if key == "sign" or value is None or value == "":
            continue
        sign_string += f"{key}{value}"
    sign_string += app_secret

    return hashlib.md5(sign_string.encode("utf-8")).hexdigest().upper()


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def aws_sigv4_headers(
    *,
    access_key: str,
    secret_key: str,
    region: str,
    service: str,
    host: str,
    path: str,
    target: str,
    payload: str,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Generate AWS Signature Version 4 headers for a JSON POST.

    Args:
        access_key: AWS access key id
        secret_key: AWS secret key
        region: Signing region (e.g. "eu-west-1")
        service: Signing service name (e.g. "ProductAdvertisingAPI")
        host: Request host
        path: Canonical URI path
        target: Value of the X-Amz-Target header
        payload: Exact request body that will be sent
        now: Signing time, defaults to the current UTC time

    Returns:
        Headers including Authorization, ready to send with ``payload``
    """
    t = now or datetime.now(timezone.utc)
    amz_date = t.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = t.strftime("%Y%m%d")

    payload_hash = hashlib.sha256(payload.encode("utf-8")).hexdigest()

    content_type = "application/json; charset=utf-8"
    canonical_headers = (
        f"content-encoding:amz-1.0\n"
        f"content-type:{content_type}\n"
        f"host:{host}\n"
        f"x-amz-date:{amz_date}\n"
        f"x-amz-target:{target}\n"
    )
    signed_headers = "content-encoding;content-type;host;x-amz-date;x-amz-target"

    canonical_request = "\n".join(
        ["POST", path, "", canonical_headers, signed_headers, payload_hash]
    )

    algorithm = "AWS4-HMAC-SHA256"
    credential_scope = f"{date_stamp}/{region}/{service}/aws4_request"
    string_to_sign = "\n".join(
        [
            algorithm,
            amz_date,
            credential_scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )

    k_date = _hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    k_signing = _hmac_sha256(k_service, "aws4_request")

    signature = hmac.new(k_signing, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    return {
        "Authorization": (
            f"{algorithm} Credential={access_key}/{credential_scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        ),
        "Content-Encoding": "amz-1.0",
        "Content-Type": content_type,
        "Host": host,
        "X-Amz-Date": amz_date,
        "X-Amz-Target": target,
    }
