"""Persistence contract shared by the in-memory and Postgres stores.

The store is the only shared mutable state in the process. Every method that
touches more than one record is atomic: either all of its writes land or none
do. Graph invariants that must hold under concurrency (one pending friend
request per unordered pair, one direct-message group per friend pair,
symmetric friendships, per-chat commit order) are enforced here, not in the
services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from remix.domain.chat.models import Content, Message, ReadPosition
from remix.domain.groups.models import Chat, Group, GroupRequest
from remix.domain.social.models import FriendRequest
from remix.domain.users.models import User


@dataclass(slots=True)
class AcceptOutcome:
	request: FriendRequest
	group: Group
	dm_created: bool


class Store(Protocol):
	async def start(self) -> None:
		...

	async def stop(self) -> None:
		...

	async def ping(self) -> None:
		"""Raise if the backing storage cannot answer a trivial query."""
		...

	# Users
	async def create_user(self, user: User) -> User:
		...

	async def get_user(self, user_id: str) -> Optional[User]:
		...

	async def get_users(self, user_ids: Sequence[str]) -> list[User]:
		...

	async def find_user_by_email(self, email: str) -> Optional[User]:
		...

	async def find_user_by_phone(self, phone_number: str) -> Optional[User]:
		...

	async def search_users(self, phrase: str, *, limit: int) -> list[User]:
		...

	# Friend requests and friendships
	async def create_friend_request(self, request: FriendRequest) -> FriendRequest:
		...

	async def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
		...

	async def accept_friend_request(
		self,
		request_id: str,
		*,
		recipient_id: str,
		dm_group: Group,
		dm_chat: Chat,
	) -> AcceptOutcome:
		...

	async def delete_friend_request(self, request_id: str, *, actor_id: str) -> FriendRequest:
		...

	async def list_incoming_friend_requests(self, user_id: str) -> list[FriendRequest]:
		...

	async def list_friend_ids(self, user_id: str) -> list[str]:
		...

	async def are_friends(self, user_id: str, other_id: str) -> bool:
		...

	# Groups, chats and membership
	async def create_group(self, group: Group, chat: Chat, member_ids: Sequence[str] = ()) -> Group:
		...

	async def get_group(self, group_id: str) -> Optional[Group]:
		...

	async def find_dm_group(self, user_id: str, other_id: str) -> Optional[Group]:
		...

	async def list_groups_for_user(self, user_id: str) -> list[Group]:
		...

	async def get_chat(self, chat_id: str) -> Optional[Chat]:
		...

	async def create_chat(self, chat: Chat) -> Chat:
		...

	async def list_chats(self, group_id: str) -> list[Chat]:
		...

	async def list_member_ids(self, group_id: str) -> list[str]:
		...

	async def is_member(self, group_id: str, user_id: str) -> bool:
		...

	async def add_member(self, group_id: str, user_id: str) -> bool:
		...

	async def remove_member(self, group_id: str, user_id: str) -> bool:
		...

	async def create_group_request(self, record: GroupRequest) -> GroupRequest:
		...

	async def get_group_request(self, request_id: str) -> Optional[GroupRequest]:
		...

	async def accept_group_request(self, request_id: str) -> Tuple[GroupRequest, bool]:
		...

	# Messages and content
	async def create_message(self, *, message_id: str, chat_id: str, user_id: str, content: Content) -> Message:
		...

	async def create_message_with_content(
		self,
		*,
		message_id: str,
		chat_id: str,
		user_id: str,
		content_id: str,
	) -> Message:
		...

	async def get_message(self, message_id: str) -> Optional[Message]:
		...

	async def get_content(self, content_id: str) -> Optional[Content]:
		...

	async def list_chat_messages(self, chat_id: str) -> list[Message]:
		...

	async def list_user_messages(self, user_id: str) -> list[Message]:
		...

	# Read positions
	async def upsert_read_position(self, user_id: str, message: Message) -> Tuple[ReadPosition, bool]:
		...

	async def get_read_position(self, user_id: str, chat_id: str) -> Optional[ReadPosition]:
		...
