"""Social domain exports."""

from .models import FRIEND_REQUEST_STREAM, FriendRequest, pair_key  # noqa: F401
