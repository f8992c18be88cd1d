"""Transport that delegates signing and HTTP to a ccxt exchange client."""

import ccxt.async_support as ccxt

from tradelink.exchanges.errors import DispatchTimeout, TransportError, VenueError
from tradelink.exchanges.transport import RawResponse, RequestSpec


class CcxtTransport:
    """Uses ccxt's ``sign`` and ``fetch`` for venues ccxt already speaks.

    Request paths are ccxt implicit-API paths (e.g. ``market/ticker``);
    authenticated requests go to ccxt's ``private`` API section.
    """

    def __init__(self, venue: str, exchange: ccxt.Exchange):
        self._venue = venue
        self._exchange = exchange

    @property
    def exchange(self) -> ccxt.Exchange:
        return self._exchange

    async def perform(self, request: RequestSpec) -> RawResponse:
        api = "private" if request.authenticated else "public"
        params = dict(request.params)
        if request.body:
            params.update(request.body)
        try:
            signed = self._exchange.sign(request.path, api, request.method, params)
            payload = await self._exchange.fetch(
                signed["url"],
                signed.get("method", request.method),
                signed.get("headers"),
                signed.get("body"),
            )
        except ccxt.RequestTimeout as e:
            raise DispatchTimeout(
                f"{self._venue} {request.path} timed out", venue=self._venue
            ) from e
        except ccxt.NetworkError as e:
            raise TransportError(
                f"{self._venue} network error: {e}", venue=self._venue
            ) from e
        except ccxt.AuthenticationError as e:
            raise VenueError(str(e), venue=self._venue, code="auth") from e
        except ccxt.ExchangeError as e:
            raise VenueError(str(e), venue=self._venue) from e
        return RawResponse(status_code=200, payload=payload)

    async def close(self) -> None:
        await self._exchange.close()
