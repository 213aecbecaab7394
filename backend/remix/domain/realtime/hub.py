"""In-process fan-out of live events to subscribers.

Publishers never wait on subscribers: each subscription owns a bounded
queue and an event that does not fit is dropped for that subscriber only.
There is no backlog; a subscriber sees events published after it
registered.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, DefaultDict, Optional, Set, Tuple

from remix.obs import metrics as obs_metrics
from remix.settings import settings

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
	"""Registration for one ``(stream, key)``; async-iterates published payloads."""

	def __init__(self, hub: "FanoutHub", stream: str, key: str, maxsize: int) -> None:
		self.hub = hub
		self.stream = stream
		self.key = key
		self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
		self._closed = False

	@property
	def closed(self) -> bool:
		return self._closed

	def offer(self, payload: Any) -> bool:
		if self._closed:
			return False
		try:
			self._queue.put_nowait(payload)
		except asyncio.QueueFull:
			return False
		return True

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self.hub._release(self)
		# Sentinel ends iteration; a full queue gives up its oldest payloads for it.
		while True:
			try:
				self._queue.put_nowait(_CLOSED)
				break
			except asyncio.QueueFull:
				self._queue.get_nowait()

	async def get(self) -> Any:
		if self._closed and self._queue.empty():
			raise StopAsyncIteration
		item = await self._queue.get()
		if item is _CLOSED:
			raise StopAsyncIteration
		return item

	def __aiter__(self) -> "Subscription":
		return self

	async def __anext__(self) -> Any:
		return await self.get()

	async def __aenter__(self) -> "Subscription":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		self.close()


class FanoutHub:
	def __init__(self, *, queue_size: Optional[int] = None) -> None:
		self.queue_size = max(1, int(queue_size or settings.fanout_queue_size))
		self._subscribers: DefaultDict[Tuple[str, str], Set[Subscription]] = defaultdict(set)
		self._stopped = False

	def subscribe(self, stream: str, key: str) -> Subscription:
		if self._stopped:
			raise RuntimeError("fan-out hub is stopped")
		subscription = Subscription(self, stream, str(key), self.queue_size)
		self._subscribers[(stream, subscription.key)].add(subscription)
		obs_metrics.fanout_subscribed(stream)
		return subscription

	def publish(self, stream: str, key: str, payload: Any) -> int:
		"""Offer ``payload`` to every subscriber of ``(stream, key)``; returns deliveries."""
		delivered = 0
		for subscription in tuple(self._subscribers.get((stream, str(key)), ())):
			if subscription.offer(payload):
				delivered += 1
				obs_metrics.fanout_published(stream)
			else:
				obs_metrics.fanout_dropped(stream)
				logger.warning("fanout_dropped", extra={"stream": stream, "key": key})
		return delivered

	def subscriber_count(self, stream: str, key: str) -> int:
		return len(self._subscribers.get((stream, str(key)), ()))

	def _release(self, subscription: Subscription) -> None:
		bucket_key = (subscription.stream, subscription.key)
		bucket = self._subscribers.get(bucket_key)
		if bucket is None or subscription not in bucket:
			return
		bucket.discard(subscription)
		if not bucket:
			del self._subscribers[bucket_key]
		obs_metrics.fanout_released(subscription.stream)

	async def start(self) -> None:
		self._stopped = False

	async def stop(self) -> None:
		self._stopped = True
		for bucket in list(self._subscribers.values()):
			for subscription in list(bucket):
				subscription.close()
