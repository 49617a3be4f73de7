"""Pydantic schemas for Lunch Money request/response validation"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class InsertResponseShape(str, Enum):
    """Lunch Money may answer an insert with ids, errors, both, or neither"""

    IDS_ONLY = "ids_only"
    IDS_WITH_ERRORS = "ids_with_errors"
    ERRORS_ONLY = "errors_only"
    EMPTY = "empty"


class TransactionPayload(BaseModel):
    """Transaction object as accepted by POST /transactions"""

    date: datetime
    amount: str = Field(..., description="Numeric string with up to 4 decimals")
    payee: Optional[str] = None
    currency: Optional[str] = None
    asset_id: Optional[int] = None
    status: str = "uncleared"
    external_id: Optional[str] = None
    notes: Optional[str] = None
    original_name: Optional[str] = None
    is_pending: Optional[bool] = None
    category_id: Optional[int] = None
    tags: Optional[List[str]] = None


class InsertTransactionsRequest(BaseModel):
    """Request body for POST /transactions"""

    transactions: List[TransactionPayload]
    apply_rules: bool = True
    check_for_recurring: bool = True
    debit_as_negative: bool = True


class InsertTransactionsResponse(BaseModel):
    """Response for POST /transactions"""

    ids: Optional[List[int]] = None
    error: Optional[List[str]] = None

    @property
    def shape(self) -> InsertResponseShape:
        if self.ids is not None and self.error is not None:
            return InsertResponseShape.IDS_WITH_ERRORS
        if self.ids is not None:
            return InsertResponseShape.IDS_ONLY
        if self.error is not None:
            return InsertResponseShape.ERRORS_ONLY
        return InsertResponseShape.EMPTY


class AssetSchema(BaseModel):
    """Asset object as returned by GET /assets and PUT /assets/{id}"""

    model_config = ConfigDict(extra="ignore")

    id: int
    balance: Union[str, float]
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


class AssetsResponse(BaseModel):
    """Response for GET /assets"""

    assets: List[AssetSchema]


class UpdateAssetRequest(BaseModel):
    """Request body for PUT /assets/{id}"""

    balance: str
    currency: str
