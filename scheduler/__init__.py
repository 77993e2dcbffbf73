"""Background jobs for change notification."""

from .change_poller import ChangePoller, fingerprint

__all__ = ["ChangePoller", "fingerprint"]
