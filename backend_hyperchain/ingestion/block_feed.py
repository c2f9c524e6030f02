"""
Live block feed: WebSocket newHeads → fetch block → normalize → RawTransaction.

Connects to a JSON-RPC WebSocket endpoint, subscribes to new block heads
(eth_subscribe / newHeads), fetches every announced block with its full
transactions over HTTP (eth_getBlockByNumber), and yields RawTransactions in
block order and, within a block, in the order the feed supplies them.

Fault tolerance: auto-reconnect with exponential backoff. A block that cannot
be fetched, or a transaction that cannot be normalized, is logged and skipped;
it never ends the stream. Every HTTP call carries a timeout.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from backend_hyperchain.core.exceptions import FeedFetchError
from backend_hyperchain.hyperchain_logging import get_logger, short_id
from backend_hyperchain.ingestion.models import RawTransaction
from backend_hyperchain.ingestion.source import TransactionSource

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_RECONNECT_MIN_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
DEFAULT_MAX_CATCHUP_BLOCKS = 10
DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
_WS_CLOSE_TIMEOUT = 5.0
_SUBSCRIBE_TIMEOUT_SEC = 10.0
# How often the receive loop wakes up to check for stop()
_RECV_POLL_SEC = 1.0


@dataclass
class BlockFeedConfig:
    """Config for the live block feed."""

    ws_url: str
    rpc_url: str
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    max_catchup_blocks: int = DEFAULT_MAX_CATCHUP_BLOCKS
    ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL
    ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT


class BlockFeedSource(TransactionSource):
    """
    Live-feed adapter over a JSON-RPC node.

    Heads at or below the last processed block are ignored; a small gap
    (up to max_catchup_blocks) is filled by fetching the missing blocks in
    order, a larger one resumes from the announced head.
    """

    name = "block_feed"

    def __init__(self, config: BlockFeedConfig) -> None:
        super().__init__()
        if not config.ws_url.strip():
            raise ValueError("ws_url must be non-empty")
        if not config.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if config.request_timeout_sec <= 0:
            raise ValueError("request_timeout_sec must be positive")
        self._config = config
        self._last_block: int | None = None
        self._next_rpc_id = 0

    @property
    def last_block(self) -> int | None:
        return self._last_block

    def _next_id(self) -> int:
        self._next_rpc_id += 1
        return self._next_rpc_id

    async def _produce(self) -> AsyncIterator[RawTransaction]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.request_timeout_sec)
        ) as client:
            async for head in self._block_numbers():
                for number in self._blocks_to_fetch(head):
                    if self.stopped:
                        return
                    try:
                        block = await self._fetch_block(client, number)
                    except FeedFetchError as e:
                        logger.warning(
                            "feed_block_fetch_failed",
                            block_number=number,
                            error=str(e),
                        )
                        self._last_block = number
                        continue
                    self._last_block = number
                    for tx in self._normalize_block(block, number):
                        yield tx

    def _blocks_to_fetch(self, head: int) -> list[int]:
        """Block numbers to fetch, in order, for a newly announced head."""
        last = self._last_block
        if last is None:
            return [head]
        if head <= last:
            logger.debug("feed_head_stale", head=head, last_block=last)
            return []
        start = last + 1
        if head - last > self._config.max_catchup_blocks:
            logger.warning(
                "feed_gap_too_large",
                last_block=last,
                head=head,
                max_catchup_blocks=self._config.max_catchup_blocks,
            )
            start = head - self._config.max_catchup_blocks + 1
        return list(range(start, head + 1))

    def _normalize_block(self, block: dict[str, Any], number: int) -> list[RawTransaction]:
        """Convert a block's transaction objects; malformed ones are logged and skipped."""
        observed_at = datetime.now(timezone.utc)
        out: list[RawTransaction] = []
        items = block.get("transactions") or []
        if not isinstance(items, list):
            logger.warning("feed_block_malformed", block_number=number)
            items = []
        for item in items:
            if not isinstance(item, dict):
                logger.debug("feed_tx_not_object", block_number=number)
                continue
            try:
                out.append(
                    RawTransaction.from_rpc_tx(item, observed_at=observed_at, block_number=number)
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "feed_tx_normalize_failed",
                    block_number=number,
                    tx_hash=short_id(str(item.get("hash") or "")),
                    error=str(e),
                )
        logger.info("feed_block_processed", block_number=number, tx_count=len(out))
        return out

    async def _fetch_block(self, client: httpx.AsyncClient, number: int) -> dict[str, Any]:
        """eth_getBlockByNumber with full transactions; raise FeedFetchError on any failure."""
        body = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": "eth_getBlockByNumber",
            "params": [hex(number), True],
        }
        try:
            resp = await client.post(self._config.rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FeedFetchError(str(e), block_number=number) from e
        if not isinstance(data, dict):
            raise FeedFetchError("RPC response is not an object", block_number=number)
        if data.get("error"):
            err = data["error"]
            raise FeedFetchError(f"RPC error: {err}", block_number=number)
        result = data.get("result")
        if not isinstance(result, dict):
            raise FeedFetchError("RPC returned no block", block_number=number)
        return result

    async def _block_numbers(self) -> AsyncIterator[int]:
        """
        Yield announced head numbers; reconnect with exponential backoff.
        Ends when stop() is called.
        """
        backoff = self._config.reconnect_min_sec
        run_id = 0
        while not self.stopped:
            run_id += 1
            try:
                logger.info("feed_connecting", run_id=run_id, url=self._config.ws_url)
                async with websockets.connect(
                    self._config.ws_url,
                    ping_interval=self._config.ws_ping_interval,
                    ping_timeout=self._config.ws_ping_timeout,
                    close_timeout=_WS_CLOSE_TIMEOUT,
                ) as ws:
                    await self._subscribe(ws)
                    backoff = self._config.reconnect_min_sec
                    logger.info("feed_connected", run_id=run_id)
                    async for head in self._receive_heads(ws):
                        yield head
            except ConnectionClosed as e:
                logger.warning("feed_disconnected", run_id=run_id, code=e.code, reason=e.reason)
            except (OSError, FeedFetchError, asyncio.TimeoutError, InvalidHandshake) as e:
                logger.warning("feed_connection_error", run_id=run_id, error=str(e))

            if self.stopped:
                break
            logger.info("feed_reconnect", run_id=run_id, backoff_sec=round(backoff, 1))
            if await self._sleep_or_stop(backoff):
                break
            backoff = min(backoff * 2, self._config.reconnect_max_sec)
        logger.info("feed_stopped", run_id=run_id)

    async def _subscribe(self, ws: Any) -> None:
        req = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": "eth_subscribe",
            "params": ["newHeads"],
        }
        await ws.send(json.dumps(req))
        raw = await asyncio.wait_for(ws.recv(), timeout=_SUBSCRIBE_TIMEOUT_SEC)
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise FeedFetchError(f"invalid subscribe response: {e}") from e
        if not isinstance(msg, dict):
            raise FeedFetchError(f"invalid subscribe response: {msg!r}")
        if msg.get("error") or msg.get("result") is None:
            raise FeedFetchError(f"subscribe rejected: {msg.get('error')}")
        logger.info("feed_subscribed", subscription_id=msg["result"])

    async def _receive_heads(self, ws: Any) -> AsyncIterator[int]:
        """Parse eth_subscription notifications into block numbers."""
        while not self.stopped:
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=_RECV_POLL_SEC)
            except asyncio.TimeoutError:
                continue
            try:
                msg = json.loads(raw)
            except (TypeError, ValueError):
                logger.debug("feed_message_invalid")
                continue
            number = _head_number(msg)
            if number is None:
                continue
            yield number


def _head_number(msg: Any) -> int | None:
    """Block number of a newHeads notification; None for anything else or malformed."""
    if not isinstance(msg, dict) or msg.get("method") != "eth_subscription":
        return None
    params = msg.get("params")
    result = params.get("result") if isinstance(params, dict) else None
    head = result.get("number") if isinstance(result, dict) else None
    if head is None:
        if result is not None:
            logger.debug("feed_head_invalid", head=result)
        return None
    try:
        number = int(head, 16) if isinstance(head, str) else int(head)
    except (TypeError, ValueError):
        logger.debug("feed_head_invalid", head=head)
        return None
    if number < 0:
        logger.debug("feed_head_invalid", head=head)
        return None
    return number
