"""In-process store used by tests and ``STORAGE_BACKEND=memory``.

A single ``asyncio.Lock`` serialises every operation. Multi-record writes
validate everything first and only then mutate, so a failed operation leaves
no partial state behind.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from remix.domain.chat.exceptions import ContentNotFound
from remix.domain.chat.models import Content, Message, ReadPosition
from remix.domain.groups.exceptions import ChatNotFound, GroupNotFound, GroupRequestAlreadySent, GroupRequestNotFound
from remix.domain.groups.models import Chat, Group, GroupRequest
from remix.domain.social.exceptions import (
	FriendRequestAlreadyFriends,
	FriendRequestAlreadySent,
	FriendRequestNotFound,
	FriendRequestNotParticipant,
	FriendRequestNotRecipient,
	UserMissing,
)
from remix.domain.social.models import FriendRequest, pair_key
from remix.domain.users.exceptions import EmailTaken, PhoneTaken, UsernameTaken
from remix.domain.users.models import User
from remix.infra.store.base import AcceptOutcome


def _now() -> datetime:
	return datetime.now(timezone.utc)


class InMemoryStore:
	"""Dictionary-backed store with the same semantics as ``PostgresStore``."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._seq = itertools.count(1)
		self._users: Dict[str, User] = {}
		self._friend_requests: Dict[str, FriendRequest] = {}
		# user_id -> {friend_id: created_at}; insertion order is friendship order
		self._friends: Dict[str, Dict[str, datetime]] = {}
		self._groups: Dict[str, Group] = {}
		self._dm_index: Dict[Tuple[str, str], str] = {}
		self._chats: Dict[str, Chat] = {}
		self._group_chats: Dict[str, List[str]] = {}
		# group_id -> {user_id: join sequence}
		self._members: Dict[str, Dict[str, int]] = {}
		self._group_requests: Dict[str, GroupRequest] = {}
		self._contents: Dict[str, Content] = {}
		self._messages: Dict[str, Message] = {}
		self._chat_messages: Dict[str, List[Message]] = {}
		self._read_positions: Dict[Tuple[str, str], ReadPosition] = {}

	async def start(self) -> None:
		return None

	async def stop(self) -> None:
		return None

	async def ping(self) -> None:
		return None

	# Users

	async def create_user(self, user: User) -> User:
		async with self._lock:
			for existing in self._users.values():
				if user.email and existing.email == user.email:
					raise EmailTaken()
				if user.phone_number and existing.phone_number == user.phone_number:
					raise PhoneTaken()
				if user.username and existing.username == user.username:
					raise UsernameTaken()
			self._users[user.id] = user
			return user

	async def get_user(self, user_id: str) -> Optional[User]:
		async with self._lock:
			return self._users.get(user_id)

	async def get_users(self, user_ids: Sequence[str]) -> list[User]:
		async with self._lock:
			return [self._users[user_id] for user_id in user_ids if user_id in self._users]

	async def find_user_by_email(self, email: str) -> Optional[User]:
		async with self._lock:
			return next((user for user in self._users.values() if user.email == email), None)

	async def find_user_by_phone(self, phone_number: str) -> Optional[User]:
		async with self._lock:
			return next((user for user in self._users.values() if user.phone_number == phone_number), None)

	async def search_users(self, phrase: str, *, limit: int) -> list[User]:
		async with self._lock:
			matches = [user for user in self._users.values() if user.matches(phrase)]
			matches.sort(key=lambda user: ((user.username or user.name or "").lower(), user.id))
			return matches[:limit]

	# Friend requests and friendships

	def _friends_locked(self, user_id: str, other_id: str) -> bool:
		return other_id in self._friends.get(user_id, {})

	async def create_friend_request(self, request: FriendRequest) -> FriendRequest:
		async with self._lock:
			if request.from_user_id not in self._users or request.to_user_id not in self._users:
				raise UserMissing()
			if self._friends_locked(request.from_user_id, request.to_user_id):
				raise FriendRequestAlreadyFriends()
			if any(pending.pair == request.pair for pending in self._friend_requests.values()):
				raise FriendRequestAlreadySent()
			self._friend_requests[request.id] = request
			return request

	async def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
		async with self._lock:
			return self._friend_requests.get(request_id)

	async def accept_friend_request(
		self,
		request_id: str,
		*,
		recipient_id: str,
		dm_group: Group,
		dm_chat: Chat,
	) -> AcceptOutcome:
		async with self._lock:
			request = self._friend_requests.get(request_id)
			if request is None:
				raise FriendRequestNotFound()
			if request.to_user_id != recipient_id:
				raise FriendRequestNotRecipient()
			now = _now()
			self._friends.setdefault(request.from_user_id, {}).setdefault(request.to_user_id, now)
			self._friends.setdefault(request.to_user_id, {}).setdefault(request.from_user_id, now)
			del self._friend_requests[request_id]
			existing_id = self._dm_index.get(request.pair)
			if existing_id is not None:
				return AcceptOutcome(request=request, group=self._groups[existing_id], dm_created=False)
			group = replace(dm_group, dm_pair=request.pair, is_direct_message=True)
			self._insert_group_locked(group, dm_chat, request.pair)
			self._dm_index[request.pair] = group.id
			return AcceptOutcome(request=request, group=group, dm_created=True)

	async def delete_friend_request(self, request_id: str, *, actor_id: str) -> FriendRequest:
		async with self._lock:
			request = self._friend_requests.get(request_id)
			if request is None:
				raise FriendRequestNotFound()
			if not request.involves(actor_id):
				raise FriendRequestNotParticipant()
			del self._friend_requests[request_id]
			return request

	async def list_incoming_friend_requests(self, user_id: str) -> list[FriendRequest]:
		async with self._lock:
			incoming = [request for request in self._friend_requests.values() if request.to_user_id == user_id]
			return sorted(incoming, key=lambda request: request.created_at, reverse=True)

	async def list_friend_ids(self, user_id: str) -> list[str]:
		async with self._lock:
			return list(self._friends.get(user_id, {}))

	async def are_friends(self, user_id: str, other_id: str) -> bool:
		async with self._lock:
			return self._friends_locked(user_id, other_id)

	# Groups, chats and membership

	def _insert_group_locked(self, group: Group, chat: Chat, member_ids: Sequence[str]) -> None:
		self._groups[group.id] = group
		self._chats[chat.id] = chat
		self._group_chats[group.id] = [chat.id]
		members = self._members.setdefault(group.id, {})
		for member_id in member_ids:
			members.setdefault(member_id, next(self._seq))

	async def create_group(self, group: Group, chat: Chat, member_ids: Sequence[str] = ()) -> Group:
		async with self._lock:
			self._insert_group_locked(group, chat, member_ids)
			return group

	async def get_group(self, group_id: str) -> Optional[Group]:
		async with self._lock:
			return self._groups.get(group_id)

	async def find_dm_group(self, user_id: str, other_id: str) -> Optional[Group]:
		async with self._lock:
			group_id = self._dm_index.get(pair_key(user_id, other_id))
			return self._groups.get(group_id) if group_id else None

	async def list_groups_for_user(self, user_id: str) -> list[Group]:
		async with self._lock:
			joined = [
				(members[user_id], group_id) for group_id, members in self._members.items() if user_id in members
			]
			return [self._groups[group_id] for _, group_id in sorted(joined)]

	async def get_chat(self, chat_id: str) -> Optional[Chat]:
		async with self._lock:
			return self._chats.get(chat_id)

	async def create_chat(self, chat: Chat) -> Chat:
		async with self._lock:
			if chat.group_id not in self._groups:
				raise GroupNotFound()
			self._chats[chat.id] = chat
			self._group_chats.setdefault(chat.group_id, []).append(chat.id)
			return chat

	async def list_chats(self, group_id: str) -> list[Chat]:
		async with self._lock:
			return [self._chats[chat_id] for chat_id in self._group_chats.get(group_id, [])]

	async def list_member_ids(self, group_id: str) -> list[str]:
		async with self._lock:
			members = self._members.get(group_id, {})
			return sorted(members, key=members.__getitem__)

	async def is_member(self, group_id: str, user_id: str) -> bool:
		async with self._lock:
			return user_id in self._members.get(group_id, {})

	async def add_member(self, group_id: str, user_id: str) -> bool:
		async with self._lock:
			if group_id not in self._groups:
				raise GroupNotFound()
			if user_id not in self._users:
				raise UserMissing()
			return self._add_member_locked(group_id, user_id)

	def _add_member_locked(self, group_id: str, user_id: str) -> bool:
		members = self._members.setdefault(group_id, {})
		if user_id in members:
			return False
		members[user_id] = next(self._seq)
		return True

	async def remove_member(self, group_id: str, user_id: str) -> bool:
		async with self._lock:
			return self._members.get(group_id, {}).pop(user_id, None) is not None

	async def create_group_request(self, record: GroupRequest) -> GroupRequest:
		async with self._lock:
			if record.group_id not in self._groups:
				raise GroupNotFound()
			for user_id in filter(None, (record.from_user_id, record.to_user_id)):
				if user_id not in self._users:
					raise UserMissing()
			for pending in self._group_requests.values():
				if (
					pending.group_id == record.group_id
					and pending.kind == record.kind
					and pending.joining_user_id == record.joining_user_id
				):
					raise GroupRequestAlreadySent()
			self._group_requests[record.id] = record
			return record

	async def get_group_request(self, request_id: str) -> Optional[GroupRequest]:
		async with self._lock:
			return self._group_requests.get(request_id)

	async def accept_group_request(self, request_id: str) -> Tuple[GroupRequest, bool]:
		async with self._lock:
			record = self._group_requests.pop(request_id, None)
			if record is None:
				raise GroupRequestNotFound()
			return record, self._add_member_locked(record.group_id, record.joining_user_id)

	# Messages and content

	def _append_message_locked(self, *, message_id: str, chat_id: str, user_id: str, content: Content) -> Message:
		if chat_id not in self._chats:
			raise ChatNotFound()
		history = self._chat_messages.setdefault(chat_id, [])
		created_at = _now()
		if history and history[-1].created_at > created_at:
			created_at = history[-1].created_at
		message = Message(
			id=message_id,
			seq=next(self._seq),
			chat_id=chat_id,
			user_id=user_id,
			content=content,
			created_at=created_at,
		)
		history.append(message)
		self._messages[message.id] = message
		return message

	async def create_message(self, *, message_id: str, chat_id: str, user_id: str, content: Content) -> Message:
		async with self._lock:
			message = self._append_message_locked(message_id=message_id, chat_id=chat_id, user_id=user_id, content=content)
			self._contents[content.id] = content
			return message

	async def create_message_with_content(
		self,
		*,
		message_id: str,
		chat_id: str,
		user_id: str,
		content_id: str,
	) -> Message:
		async with self._lock:
			content = self._contents.get(content_id)
			if content is None:
				raise ContentNotFound()
			return self._append_message_locked(message_id=message_id, chat_id=chat_id, user_id=user_id, content=content)

	async def get_message(self, message_id: str) -> Optional[Message]:
		async with self._lock:
			return self._messages.get(message_id)

	async def get_content(self, content_id: str) -> Optional[Content]:
		async with self._lock:
			return self._contents.get(content_id)

	async def list_chat_messages(self, chat_id: str) -> list[Message]:
		async with self._lock:
			return sorted(self._chat_messages.get(chat_id, []), key=lambda message: message.order_key)

	async def list_user_messages(self, user_id: str) -> list[Message]:
		async with self._lock:
			messages: list[Message] = []
			for group_id, members in self._members.items():
				if user_id not in members:
					continue
				for chat_id in self._group_chats.get(group_id, []):
					messages.extend(self._chat_messages.get(chat_id, []))
			return sorted(messages, key=lambda message: message.order_key, reverse=True)

	# Read positions

	async def upsert_read_position(self, user_id: str, message: Message) -> Tuple[ReadPosition, bool]:
		async with self._lock:
			key = (user_id, message.chat_id)
			current = self._read_positions.get(key)
			if current is not None:
				marked = self._messages.get(current.message_id)
				if marked is not None and marked.order_key >= message.order_key:
					return current, False
			position = ReadPosition(user_id=user_id, chat_id=message.chat_id, message_id=message.id, updated_at=_now())
			self._read_positions[key] = position
			return position, True

	async def get_read_position(self, user_id: str, chat_id: str) -> Optional[ReadPosition]:
		async with self._lock:
			return self._read_positions.get((user_id, chat_id))
