"""Locate accounts flagged for exit by their display name prefix."""
from __future__ import annotations

from typing import Any, List

from .errors import FatalError
from .logger import RunLogger
from .models import Account


def find_users(directory: Any, prefix: str, logger: RunLogger) -> List[Account]:
    """Return the accounts whose display name starts with ``prefix``.

    The directory only offers a bulk listing, so matching happens client-side.
    Listing failures are fatal.
    """

    logger.log(f"Searching for users with display name starting with '{prefix}'...")
    try:
        accounts = directory.list_users()
    except Exception as exc:
        logger.error(f"Failed to retrieve users from the directory: {exc}")
        raise FatalError(f"Unable to list directory users: {exc}") from exc

    matches = [account for account in accounts if account.has_display_name_prefix(prefix)]
    logger.log(f"Found {len(matches)} user(s) to offboard.")
    return matches


__all__ = ["find_users"]
