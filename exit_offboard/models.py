"""Data models for directory accounts and offboarding outcomes."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


GRAPH_GROUP_TYPE = "#microsoft.graph.group"


@dataclass(frozen=True)
class Account:
    """Snapshot of a directory user taken when candidates are located."""

    id: str
    display_name: str
    user_principal_name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=str(data.get("id") or "").strip(),
            display_name=str(data.get("displayName") or ""),
            user_principal_name=str(data.get("userPrincipalName") or "").strip(),
        )

    def has_display_name_prefix(self, prefix: str) -> bool:
        if not self.display_name:
            return False
        return self.display_name.startswith(prefix)


@dataclass(frozen=True)
class Group:
    """Directory group the account is a direct member of."""

    id: str
    display_name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        group_id = str(data.get("id") or "").strip()
        return cls(id=group_id, display_name=str(data.get("displayName") or group_id))

    @staticmethod
    def is_group_payload(data: Dict[str, Any]) -> bool:
        odata_type = data.get("@odata.type")
        # $select on memberOf can drop the type annotation; assume a group then.
        return odata_type is None or odata_type == GRAPH_GROUP_TYPE


@dataclass(frozen=True)
class LicenseAssignment:
    """A license SKU assigned to an account."""

    sku_id: str
    sku_part_number: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LicenseAssignment":
        part_number = str(data.get("skuPartNumber") or "").strip() or None
        return cls(sku_id=str(data.get("skuId") or "").strip(), sku_part_number=part_number)

    @property
    def label(self) -> str:
        return self.sku_part_number or self.sku_id


@dataclass
class ItemOutcome:
    """Result of a single remote mutation (one group, one license, one mailbox)."""

    item: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class StageResult:
    """Outcome of one deprovisioning stage for one account."""

    stage: str
    fetch_error: Optional[str] = None
    items: List[ItemOutcome] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.fetch_error is not None

    @property
    def failures(self) -> List[ItemOutcome]:
        return [outcome for outcome in self.items if not outcome.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.skipped and not self.failures


@dataclass
class AccountResult:
    account: Account
    stages: List[StageResult] = field(default_factory=list)

    def stage(self, name: str) -> Optional[StageResult]:
        for result in self.stages:
            if result.stage == name:
                return result
        return None

    @property
    def succeeded(self) -> bool:
        return all(result.succeeded for result in self.stages)


@dataclass
class RunSummary:
    prefix: str
    accounts: List[AccountResult] = field(default_factory=list)

    @property
    def failed_items(self) -> int:
        total = 0
        for result in self.accounts:
            for stage in result.stages:
                total += len(stage.failures) + (1 if stage.skipped else 0)
        return total


__all__ = [
    "Account",
    "AccountResult",
    "Group",
    "ItemOutcome",
    "LicenseAssignment",
    "RunSummary",
    "StageResult",
]
