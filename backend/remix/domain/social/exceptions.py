"""Domain-level exceptions for friend requests & friendships."""

from __future__ import annotations

from remix.domain.common.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
)


class FriendRequestSelf(ConflictError):
    detail = "self_request"


class FriendRequestAlreadySent(ConflictError):
    detail = "already_sent"


class FriendRequestAlreadyFriends(ConflictError):
    detail = "already_friends"


class FriendRequestNotFound(NotFoundError):
    detail = "friend_request_not_found"


class FriendRequestNotRecipient(AuthorizationError):
    detail = "not_recipient"


class FriendRequestNotParticipant(AuthorizationError):
    detail = "not_participant"


class UserMissing(NotFoundError):
    detail = "user_missing"


class FriendRequestRateLimited(RateLimitedError):
    """Raised when friend request sending hits a quota."""
