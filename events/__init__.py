"""Change notification channel for store collections."""

from .change_feed import ChangeAction, ChangeEvent, ChangeFeed, Subscription

__all__ = ["ChangeAction", "ChangeEvent", "ChangeFeed", "Subscription"]
