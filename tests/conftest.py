"""Shared fixtures: in-memory directory and mailbox services."""
from __future__ import annotations

import io
from typing import Dict, List, Optional, Set, Tuple

import pytest

from exit_offboard.exchange_client import MailboxCommandError
from exit_offboard.graph_client import GraphRequestError
from exit_offboard.logger import RunLogger
from exit_offboard.models import Account, Group, LicenseAssignment


class FakeDirectory:
    name = "Fake Directory"

    def __init__(self, accounts: Optional[List[Account]] = None) -> None:
        self.accounts: List[Account] = list(accounts or [])
        self.groups: Dict[str, List[Group]] = {}
        self.licenses: Dict[str, List[LicenseAssignment]] = {}
        self.failing_groups: Set[str] = set()
        self.failing_licenses: Set[str] = set()
        self.fail_connect = False
        self.fail_listing = False
        self.fail_group_fetch = False
        self.fail_license_fetch = False
        self.connected = False
        self.calls: List[Tuple[str, ...]] = []

    def connect(self) -> None:
        self.calls.append(("connect",))
        if self.fail_connect:
            raise GraphRequestError(0, "invalid_client", "bad secret")
        self.connected = True

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))
        self.connected = False

    def list_users(self) -> List[Account]:
        self.calls.append(("list_users",))
        if self.fail_listing:
            raise GraphRequestError(503, "ServiceUnavailable", "try later")
        return list(self.accounts)

    def get_user_groups(self, user_id: str) -> List[Group]:
        self.calls.append(("get_user_groups", user_id))
        if self.fail_group_fetch:
            raise GraphRequestError(403, "Authorization_RequestDenied", "denied")
        return list(self.groups.get(user_id, []))

    def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        self.calls.append(("remove_user_from_group", user_id, group_id))
        if group_id in self.failing_groups:
            raise GraphRequestError(400, "Request_BadRequest", "cannot update mail-enabled group")

    def get_user_licenses(self, user_id: str) -> List[LicenseAssignment]:
        self.calls.append(("get_user_licenses", user_id))
        if self.fail_license_fetch:
            raise GraphRequestError(500, "InternalServerError", "boom")
        return list(self.licenses.get(user_id, []))

    def remove_license(self, user_id: str, sku_id: str) -> None:
        self.calls.append(("remove_license", user_id, sku_id))
        if sku_id in self.failing_licenses:
            raise GraphRequestError(400, "Request_BadRequest", "group-based license")


class FakeMailbox:
    name = "Fake Mailbox"

    def __init__(self) -> None:
        self.fail_connect = False
        self.fail_disconnect = False
        self.failing: Set[str] = set()
        self.connected = False
        self.calls: List[Tuple[str, ...]] = []

    def connect(self) -> None:
        self.calls.append(("connect",))
        if self.fail_connect:
            raise MailboxCommandError("PowerShell module missing")
        self.connected = True

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))
        if self.fail_disconnect:
            raise MailboxCommandError("session already closed")
        self.connected = False

    def convert_to_shared(self, identity: str) -> None:
        self.calls.append(("convert_to_shared", identity))
        if identity in self.failing:
            raise MailboxCommandError("Set-Mailbox failed with exit code 1.")


def make_account(display_name: str, upn: str, account_id: Optional[str] = None) -> Account:
    return Account(id=account_id or upn.split("@")[0], display_name=display_name, user_principal_name=upn)


@pytest.fixture()
def console() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def log_path(tmp_path):
    return tmp_path / "logs" / "offboarding.log"


@pytest.fixture()
def run_logger(log_path, console):
    logger = RunLogger(log_path, stream=console)
    yield logger
    logger.close()


@pytest.fixture()
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture()
def mailbox() -> FakeMailbox:
    return FakeMailbox()
