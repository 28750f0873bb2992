"""End-to-end offboarding run: connect, locate, deprovision, disconnect."""
from __future__ import annotations

from typing import Any, List

from .locator import find_users
from .logger import RunLogger
from .models import Account, RunSummary
from .sessions import SessionManager
from .worker import Deprovisioner


def run_offboarding(directory: Any, mailbox: Any, prefix: str, logger: RunLogger) -> RunSummary:
    """Offboard every account whose display name starts with ``prefix``.

    Raises :class:`~exit_offboard.errors.FatalError` when a service cannot be
    reached or the directory cannot be listed. A listing failure leaves the
    sessions as they are.
    """

    logger.log("Starting offboarding run.")
    sessions = SessionManager([directory, mailbox], logger)
    sessions.connect_all()

    accounts = find_users(directory, prefix, logger)
    summary = RunSummary(prefix=prefix)
    if not accounts:
        logger.log(f"No users found with display name starting with '{prefix}'.")
        sessions.disconnect_all()
        return summary

    worker = Deprovisioner(directory, mailbox, logger)
    try:
        for account in accounts:
            summary.accounts.append(worker.process(account))
    finally:
        sessions.disconnect_all()
    logger.log(
        f"Offboarding complete: {len(summary.accounts)} user(s) processed, "
        f"{summary.failed_items} step(s) failed."
    )
    return summary


def preview_users(directory: Any, prefix: str, logger: RunLogger) -> List[Account]:
    """List the accounts a run would offboard without changing anything."""

    sessions = SessionManager([directory], logger)
    sessions.connect_all()
    accounts = find_users(directory, prefix, logger)
    if not accounts:
        logger.log(f"No users found with display name starting with '{prefix}'.")
    for account in accounts:
        logger.log(f"Would offboard: {account.display_name} ({account.user_principal_name})")
    sessions.disconnect_all()
    return accounts


__all__ = ["run_offboarding", "preview_users"]
