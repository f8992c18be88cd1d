"""Request signers for venues spoken over the plain HTTP transport."""

import base64
import hashlib
import hmac
import time
from datetime import datetime, timezone
from urllib.parse import urlencode, urlparse

from tradelink.exchanges.transport import Credentials, RequestSpec


class HuobiSigner:
    """Huobi signature v2: HMAC-SHA256 over method, host, path and sorted query."""

    def __init__(self, base_url: str):
        self._host = urlparse(base_url).netloc

    def __call__(self, request: RequestSpec, credentials: Credentials) -> RequestSpec:
        params = {
            **request.params,
            "AccessKeyId": credentials.api_key,
            "SignatureMethod": "HmacSHA256",
            "SignatureVersion": "2",
            "Timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
        }
        query = urlencode(sorted(params.items()))
        payload = "\n".join([request.method.upper(), self._host, request.path, query])
        digest = hmac.new(
            credentials.api_secret.encode(), payload.encode(), hashlib.sha256
        ).digest()
        params["Signature"] = base64.b64encode(digest).decode()
        return request.with_updates(params=params)


class LocalBitcoinsSigner:
    """HMAC-SHA256 of nonce + key + path + encoded params, sent as headers."""

    def __call__(self, request: RequestSpec, credentials: Credentials) -> RequestSpec:
        nonce = str(int(time.time() * 1000))
        if request.body:
            encoded = urlencode(request.body)
        elif request.params:
            encoded = urlencode(request.params)
        else:
            encoded = ""
        message = nonce + credentials.api_key + request.path + encoded
        signature = hmac.new(
            credentials.api_secret.encode(), message.encode(), hashlib.sha256
        ).hexdigest().upper()
        headers = {
            **request.headers,
            "Apiauth-Key": credentials.api_key,
            "Apiauth-Nonce": nonce,
            "Apiauth-Signature": signature,
        }
        return request.with_updates(headers=headers)

