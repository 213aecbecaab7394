"""Domain-level exceptions for groups, chats and membership."""

from __future__ import annotations

from remix.domain.common.errors import AuthorizationError, ConflictError, NotFoundError


class GroupNotFound(NotFoundError):
	detail = "group_not_found"


class ChatNotFound(NotFoundError):
	detail = "chat_not_found"


class GroupRequestNotFound(NotFoundError):
	detail = "group_request_not_found"


class NotMember(AuthorizationError):
	detail = "not_member"


class DirectMessageGroup(ConflictError):
	"""Membership of a direct-message group never changes."""

	detail = "direct_message_group"


class AlreadyMember(ConflictError):
	detail = "already_member"


class GroupRequestAlreadySent(ConflictError):
	detail = "already_requested"
