"""Live subscription fan-out."""

from .hub import FanoutHub, Subscription  # noqa: F401
