"""Shared-secret request signing for the dictionary API.

Every outbound request carries three headers: `AppKey`, `Timestamp` and
`Signature`. The signature is an HMAC-SHA1 digest over a canonical
string-to-sign built from the HTTP method, the request path and the sorted
query parameters.

## Canonical string-to-sign

```
METHOD + "&" + special_url_encode(path) + "&" + special_url_encode(sorted_query)
```

where `sorted_query` is the query parameters merged with `appKey` and
`timestamp`, sorted by key and joined as `key=value` pairs with `&`, each key
and value passed through `special_url_encode`.

## Usage

```python
from dict_gateway.foundation.signature import generate_signature, generate_timestamp

timestamp = generate_timestamp()
signature = generate_signature(
    "GET",
    "/api/v1/dataapi/execute/dict/query",
    {"pageNum": 1, "pageSize": 10, "dictType": "gender"},
    app_key="my-key",
    app_secret="my-secret",
    timestamp=timestamp,
)
```
"""

import base64
import hashlib
import hmac
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from urllib.parse import quote_plus
from zoneinfo import ZoneInfo

from dict_gateway.foundation.exceptions import SignatureError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TIMEZONE = "Asia/Shanghai"
CHARSET = "utf-8"


def generate_timestamp(tz: str = DEFAULT_TIMEZONE, now: datetime | None = None) -> str:
    """Return the signing timestamp as `yyyy-MM-dd HH:mm:ss` in the given zone.

    Args:
        tz: IANA time zone name the upstream expects timestamps in.
        now: Optional instant to format (defaults to the current time).
            Naive datetimes are treated as UTC.

    Returns:
        Formatted timestamp string.
    """
    zone = ZoneInfo(tz)
    if now is None:
        return datetime.now(zone).strftime(TIMESTAMP_FORMAT)
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(zone).strftime(TIMESTAMP_FORMAT)


def special_url_encode(value: str) -> str:
    """Percent-encode a value using the signing canonicalization rules.

    Form-style encoding first (space becomes `+`), then three substitutions:
    `+` to `%20`, `*` to `%2A` and `%7E` back to `~`.

    Args:
        value: Raw string to encode.

    Returns:
        Encoded string.

    Raises:
        SignatureError: If the value cannot be encoded as UTF-8.
    """
    try:
        encoded = quote_plus(value, safe="*", encoding=CHARSET, errors="strict")
    except UnicodeEncodeError as e:
        msg = f"Cannot encode value for signing: {e}"
        raise SignatureError(msg) from e
    return encoded.replace("+", "%20").replace("*", "%2A").replace("%7E", "~")


def build_sorted_query_string(
    query_params: Mapping[str, Any], app_key: str, timestamp: str
) -> str:
    """Merge `appKey`/`timestamp` into the params and join them in key order."""
    params: dict[str, Any] = dict(query_params)
    params["appKey"] = app_key
    params["timestamp"] = timestamp

    return "&".join(
        f"{special_url_encode(key)}={special_url_encode(str(params[key]))}"
        for key in sorted(params)
    )


def build_sign_string(
    method: str,
    path: str,
    query_params: Mapping[str, Any],
    app_key: str,
    timestamp: str,
) -> str:
    """Build the canonical string-to-sign.

    Args:
        method: HTTP method (upper-cased in the output).
        path: Request path without the base URL.
        query_params: Business query parameters; insertion order is irrelevant.
        app_key: Application key, merged into the signed parameters.
        timestamp: Signing timestamp, merged into the signed parameters.

    Returns:
        The string over which the HMAC is computed.
    """
    sorted_query = build_sorted_query_string(query_params, app_key, timestamp)
    return f"{method.upper()}&{special_url_encode(path)}&{special_url_encode(sorted_query)}"


def sign(app_secret: str, string_to_sign: str) -> str:
    """Compute the base64-encoded HMAC-SHA1 of `string_to_sign`.

    The signing key is `app_secret + "&"`.
    """
    try:
        key = f"{app_secret}&".encode(CHARSET)
        digest = hmac.new(key, string_to_sign.encode(CHARSET), hashlib.sha1).digest()
    except UnicodeEncodeError as e:
        msg = f"Cannot encode signing input: {e}"
        raise SignatureError(msg) from e
    return base64.b64encode(digest).decode("ascii")


def generate_signature(
    method: str,
    path: str,
    query_params: Mapping[str, Any],
    app_key: str,
    app_secret: str,
    timestamp: str,
) -> str:
    """Sign a request.

    Args:
        method: HTTP method.
        path: Request path without the base URL.
        query_params: Business query parameters.
        app_key: Application key.
        app_secret: Shared secret.
        timestamp: Signing timestamp (see `generate_timestamp`).

    Returns:
        Base64 signature for the `Signature` header.

    Raises:
        SignatureError: If any part of the input cannot be encoded.
    """
    string_to_sign = build_sign_string(method, path, query_params, app_key, timestamp)
    return sign(app_secret, string_to_sign)
