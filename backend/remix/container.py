"""Explicitly constructed service container owning the store, hub and services."""

from __future__ import annotations

import logging
from typing import Optional

from remix.domain.chat.read_position import ReadPositionService
from remix.domain.chat.service import ChatService
from remix.domain.common.pipeline import Pipeline, Pipelines
from remix.domain.groups.service import GroupService
from remix.domain.realtime.hub import FanoutHub
from remix.domain.social.service import SocialService
from remix.domain.users.relevance import RelevanceService
from remix.domain.users.service import UserService
from remix.infra.store import InMemoryStore, PostgresStore, Store
from remix.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class ServiceContainer:
	def __init__(
		self,
		store: Store,
		hub: Optional[FanoutHub] = None,
		*,
		config: Optional[Settings] = None,
		pipelines: Optional[Pipelines] = None,
	) -> None:
		config = config or default_settings
		self.config = config
		self.store = store
		self.hub = hub or FanoutHub(queue_size=config.fanout_queue_size)
		self.pipelines = pipelines or Pipelines.default()
		self.users = UserService(store, self.pipelines)
		self.groups = GroupService(store, self.pipelines, default_chat_name=config.default_chat_name)
		self.social = SocialService(
			store,
			self.pipelines,
			self.hub,
			dm_group_name=config.dm_group_name,
			default_chat_name=config.default_chat_name,
		)
		self.chat = ChatService(
			store,
			self.pipelines,
			self.hub,
			self.groups,
			echo_to_author=config.fanout_echo_to_author,
		)
		self.read_positions = ReadPositionService(store, self.pipelines, self.groups)
		self.relevance = RelevanceService(store, self.pipelines)

	@property
	def pipeline(self) -> Pipeline:
		"""Base pipeline for anonymous operations."""
		return self.pipelines.anonymous

	@property
	def authenticated(self) -> Pipeline:
		return self.pipelines.authenticated

	async def start(self) -> None:
		await self.store.start()
		await self.hub.start()
		logger.info("services_started", extra={"store": type(self.store).__name__})

	async def stop(self) -> None:
		await self.hub.stop()
		await self.store.stop()
		logger.info("services_stopped")


def build_container(config: Optional[Settings] = None) -> ServiceContainer:
	config = config or default_settings
	store: Store
	if config.storage_backend == "memory":
		store = InMemoryStore()
	else:
		store = PostgresStore(dsn=config.postgres_url)
	return ServiceContainer(store, config=config)
