"""Per-account deprovisioning: groups, then licenses, then the mailbox."""
from __future__ import annotations

from typing import Any, Tuple, Type

import requests

from .exchange_client import MailboxClientError
from .graph_client import DirectoryClientError
from .logger import RunLogger
from .models import Account, AccountResult, ItemOutcome, StageResult


STAGE_GROUPS = "groups"
STAGE_LICENSES = "licenses"
STAGE_MAILBOX = "mailbox"

# Failures reported by the services themselves; their message is logged verbatim.
RECOVERABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    DirectoryClientError,
    MailboxClientError,
    requests.RequestException,
    OSError,
)


def _describe(exc: Exception) -> str:
    if isinstance(exc, RECOVERABLE_ERRORS):
        return str(exc)
    return f"unexpected {type(exc).__name__}: {exc}"


class Deprovisioner:
    """Strips an account's access and converts its mailbox.

    Each stage is isolated: a failed fetch skips only that stage, and a failed
    removal of one item does not stop the remaining items. Nothing is retried
    or rolled back.
    """

    def __init__(self, directory: Any, mailbox: Any, logger: RunLogger) -> None:
        self._directory = directory
        self._mailbox = mailbox
        self._logger = logger

    def process(self, account: Account) -> AccountResult:
        self._logger.log(
            f"Processing user: {account.display_name} ({account.user_principal_name})"
        )
        result = AccountResult(account=account)
        result.stages.append(self.remove_groups(account))
        result.stages.append(self.remove_licenses(account))
        result.stages.append(self.convert_mailbox(account))
        self._logger.log(f"Finished processing user: {account.display_name}")
        return result

    def remove_groups(self, account: Account) -> StageResult:
        stage = StageResult(stage=STAGE_GROUPS)
        try:
            groups = self._directory.get_user_groups(account.id)
        except Exception as exc:
            stage.fetch_error = _describe(exc)
            self._logger.error(
                f"Failed to retrieve group memberships for {account.user_principal_name}: {_describe(exc)}"
            )
            return stage

        if not groups:
            self._logger.log(f"{account.user_principal_name} has no group memberships.")
            return stage

        for group in groups:
            self._logger.log(
                f"Attempting to remove {account.user_principal_name} from group '{group.display_name}'..."
            )
            try:
                self._directory.remove_user_from_group(account.id, group.id)
            except Exception as exc:
                stage.items.append(ItemOutcome(item=group.display_name, succeeded=False, error=_describe(exc)))
                self._logger.warning(
                    f"Could not remove {account.user_principal_name} from group '{group.display_name}': {_describe(exc)}"
                )
                continue
            stage.items.append(ItemOutcome(item=group.display_name, succeeded=True))
            self._logger.log(
                f"Removed {account.user_principal_name} from group '{group.display_name}'."
            )
        return stage

    def remove_licenses(self, account: Account) -> StageResult:
        stage = StageResult(stage=STAGE_LICENSES)
        try:
            licenses = self._directory.get_user_licenses(account.id)
        except Exception as exc:
            stage.fetch_error = _describe(exc)
            self._logger.error(
                f"Failed to retrieve licenses for {account.user_principal_name}: {_describe(exc)}"
            )
            return stage

        if not licenses:
            self._logger.log(f"{account.user_principal_name} has no assigned licenses.")
            return stage

        for assignment in licenses:
            self._logger.log(
                f"Attempting to remove license '{assignment.label}' from {account.user_principal_name}..."
            )
            try:
                self._directory.remove_license(account.id, assignment.sku_id)
            except Exception as exc:
                stage.items.append(ItemOutcome(item=assignment.label, succeeded=False, error=_describe(exc)))
                self._logger.warning(
                    f"Could not remove license '{assignment.label}' from {account.user_principal_name}: {_describe(exc)}"
                )
                continue
            stage.items.append(ItemOutcome(item=assignment.label, succeeded=True))
            self._logger.log(
                f"Removed license '{assignment.label}' from {account.user_principal_name}."
            )
        return stage

    def convert_mailbox(self, account: Account) -> StageResult:
        stage = StageResult(stage=STAGE_MAILBOX)
        identity = account.user_principal_name
        self._logger.log(f"Attempting to convert mailbox {identity} to a shared mailbox...")
        try:
            self._mailbox.convert_to_shared(identity)
        except Exception as exc:
            stage.items.append(ItemOutcome(item=identity, succeeded=False, error=_describe(exc)))
            self._logger.error(f"Failed to convert mailbox {identity} to shared: {_describe(exc)}")
            return stage
        stage.items.append(ItemOutcome(item=identity, succeeded=True))
        self._logger.log(f"Converted mailbox {identity} to a shared mailbox.")
        return stage


__all__ = [
    "Deprovisioner",
    "RECOVERABLE_ERRORS",
    "STAGE_GROUPS",
    "STAGE_LICENSES",
    "STAGE_MAILBOX",
]
