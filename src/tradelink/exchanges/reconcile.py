"""Helpers for resolving venue state that arrives incomplete."""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import structlog

from tradelink.exchanges.errors import ExchangeError, PlacementAmbiguous
from tradelink.models import CANCELLED

logger = structlog.get_logger()


def _same(expected: Any, actual: Any) -> bool:
    if isinstance(expected, bool) or isinstance(actual, bool):
        return type(expected) is type(actual) and expected == actual
    if isinstance(expected, (int, float)) or isinstance(actual, (int, float)):
        try:
            return float(expected) == float(actual)
        except (TypeError, ValueError):
            return False
    return str(expected) == str(actual)


def match_submitted(
    venue: str,
    submitted: Mapping[str, Any],
    candidates: Iterable[tuple[str, Mapping[str, Any]]],
) -> str:
    """Find the one open entity whose exposed fields equal ``submitted``.

    ``candidates`` yields ``(identifier, fields)``. Every key in
    ``submitted`` must be present and equal in a candidate's fields.

    Raises:
        PlacementAmbiguous: when no candidate or more than one matches.
    """
    matches = [
        identifier
        for identifier, fields in candidates
        if all(
            key in fields and _same(value, fields[key])
            for key, value in submitted.items()
        )
    ]
    if len(matches) != 1:
        logger.warning(
            "order_reconciliation_ambiguous",
            venue=venue,
            candidates=len(matches),
        )
        raise PlacementAmbiguous(
            f"Order placed on {venue} but {len(matches)} open orders match it",
            venue=venue,
            candidates=len(matches),
        )
    logger.info("order_reconciled", venue=venue, order_id=matches[0])
    return matches[0]


async def cancel_each(
    venue: str,
    order_ids: Iterable[str],
    cancel: Callable[[str], Awaitable[Any]],
) -> dict[str, str]:
    """Cancel orders one by one, recording a status for every identifier.

    One failure never stops the remaining cancellations.
    """
    statuses: dict[str, str] = {}
    for order_id in order_ids:
        try:
            await cancel(order_id)
        except ExchangeError as e:
            statuses[order_id] = str(e) or type(e).__name__
            logger.warning(
                "order_cancel_failed", venue=venue, order_id=order_id, error=str(e)
            )
        else:
            statuses[order_id] = CANCELLED
    return statuses
