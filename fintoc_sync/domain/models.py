"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from fintoc_sync.domain.money import Amount, Currency


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"


class MovementType(str, Enum):
    TRANSFER = "transfer"
    CHECK = "check"
    OTHER = "other"


class TransactionStatus(str, Enum):
    CLEARED = "cleared"
    UNCLEARED = "uncleared"


@dataclass(frozen=True)
class AccountCredentials:
    """Everything needed to read one Fintoc account"""

    secret_token: str
    link_token: str
    account_id: str


@dataclass(frozen=True)
class Institution:
    id: str
    name: str
    country: str


@dataclass(frozen=True)
class TransferAccount:
    """Counterparty of a transfer movement"""

    holder_id: str
    holder_name: str
    number: Optional[str] = None
    institution: Optional[Institution] = None


@dataclass(frozen=True)
class Movement:
    """Bank movement from Fintoc, amount in signed minor units"""

    id: str
    amount: int
    post_date: datetime
    description: str
    currency: str
    type: MovementType
    pending: bool
    transaction_date: Optional[datetime] = None
    reference_id: Optional[str] = None
    sender_account: Optional[TransferAccount] = None
    recipient_account: Optional[TransferAccount] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class AccountBalance:
    available: int
    current: int
    limit: int


@dataclass(frozen=True)
class FintocAccount:
    """Bank account as listed by Fintoc for a link"""

    id: str
    name: str
    official_name: str
    type: str
    currency: str
    balance: AccountBalance
    holder_name: str = ""
    number: Optional[str] = None


@dataclass
class Transaction:
    """Lunch Money transaction built from a movement"""

    date: datetime
    amount: Amount
    asset_id: int
    external_id: str
    payee: Optional[str] = None
    currency: Optional[str] = None
    status: TransactionStatus = TransactionStatus.UNCLEARED
    notes: Optional[str] = None
    original_name: Optional[str] = None
    is_pending: Optional[bool] = None
    # Assigned by Lunch Money, never set on creation
    id: Optional[int] = None
    category_id: Optional[int] = None
    parent_id: Optional[int] = None
    group_id: Optional[int] = None
    is_group: Optional[bool] = None
    tags: Optional[List[str]] = None


@dataclass
class Asset:
    """Lunch Money manually-managed account"""

    id: int
    balance: Amount
    currency: str
    name: Optional[str] = None
    display_name: Optional[str] = None
    type_name: Optional[str] = None
    subtype_name: Optional[str] = None
    institution_name: Optional[str] = None
    balance_as_of: Optional[datetime] = None
    closed_on: Optional[str] = None
    exclude_transactions: Optional[bool] = None
    created_at: Optional[datetime] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name or "Unnamed"


@dataclass(frozen=True)
class InsertOutcome:
    """Result of posting one transaction to Lunch Money"""

    inserted_id: Optional[int] = None
    duplicate: bool = False


@dataclass(frozen=True)
class BatchResult:
    """Accumulated insertion results, combined with +"""

    inserted_ids: tuple = ()
    duplicate_count: int = 0
    failed_count: int = 0

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            inserted_ids=self.inserted_ids + other.inserted_ids,
            duplicate_count=self.duplicate_count + other.duplicate_count,
            failed_count=self.failed_count + other.failed_count,
        )

    def record(self, outcome: InsertOutcome) -> "BatchResult":
        if outcome.inserted_id is not None:
            return self + BatchResult(inserted_ids=(outcome.inserted_id,))
        if outcome.duplicate:
            return self + BatchResult(duplicate_count=1)
        return self + BatchResult(failed_count=1)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)


@dataclass(frozen=True)
class SyncWindow:
    start: datetime
    end: datetime


@dataclass
class AccountSyncReport:
    """Outcome of syncing one configured account"""

    bank_name: str
    account_name: str
    balance: Amount
    currency: Currency
    movements_skipped: bool = False
    movements_fetched: int = 0
    normalization_failures: int = 0
    result: BatchResult = field(default_factory=BatchResult)
