"""Request and response schemas for the accounting endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountCreate(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("code", "account_code"),
        description="Unique account code",
    )
    name: str = Field(..., min_length=1, description="Account name")
    account_type: str = Field(
        ...,
        validation_alias=AliasChoices("account_type", "type"),
        description="ASSET, LIABILITY, EQUITY, REVENUE or EXPENSE",
    )
    is_postable: bool = Field(True, description="Whether journal lines may target the account")


class AccountUpdate(BaseModel):
    code: Optional[str] = Field(
        None, max_length=50, validation_alias=AliasChoices("code", "account_code")
    )
    name: Optional[str] = None
    account_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("account_type", "type")
    )
    is_postable: Optional[bool] = None


class AccountRead(BaseModel):
    id: UUID
    code: str
    name: str
    account_type: str
    normal_balance: str
    is_postable: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------


class PeriodCreate(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("name", "period_name"),
    )
    start_date: date
    end_date: date


class PeriodUpdate(BaseModel):
    name: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("name", "period_name")
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class PeriodRead(BaseModel):
    id: UUID
    name: str
    start_date: date
    end_date: date
    status: str
    revision: int
    validated_revision: Optional[int] = None
    calculated_revision: Optional[int] = None
    last_validated_at: Optional[datetime] = None
    last_calculated_at: Optional[datetime] = None
    locked_at: Optional[datetime] = None
    locked_by_id: Optional[UUID] = None
    reopened_at: Optional[datetime] = None
    reopened_by_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class StatusChange(BaseModel):
    status: str = Field(..., description="Target status, e.g. REOPENED")


class ActionResultRead(BaseModel):
    ok: bool
    message: str
    period_id: UUID
    status: str
    detail: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Journal entries and lines
# ---------------------------------------------------------------------------


class LineIn(BaseModel):
    account_id: UUID
    debit: Decimal = Field(Decimal("0"), description="Debit amount")
    credit: Decimal = Field(Decimal("0"), description="Credit amount")
    memo: Optional[str] = None


class JournalLineCreate(LineIn):
    journal_entry_id: UUID = Field(
        ..., validation_alias=AliasChoices("journal_entry_id", "entry_id")
    )


class JournalLineUpdate(BaseModel):
    account_id: Optional[UUID] = None
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None
    memo: Optional[str] = None


class JournalLineRead(BaseModel):
    id: UUID
    entry_id: UUID
    line_number: int
    account_id: UUID
    account_code: str
    debit: Decimal
    credit: Decimal
    memo: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class JournalEntryCreate(BaseModel):
    entry_number: str = Field(..., min_length=1, max_length=50)
    posting_date: date
    period_id: UUID
    description: Optional[str] = None
    source_reference: Optional[str] = None
    lines: List[LineIn] = Field(default_factory=list)


class JournalEntryUpdate(BaseModel):
    entry_number: Optional[str] = Field(None, max_length=50)
    posting_date: Optional[date] = None
    period_id: Optional[UUID] = None
    description: Optional[str] = None
    source_reference: Optional[str] = None


class JournalEntryRead(BaseModel):
    id: UUID
    entry_number: str
    posting_date: date
    period_id: UUID
    description: Optional[str] = None
    source_reference: Optional[str] = None
    lines: List[JournalLineRead] = Field(default_factory=list)
    total_debits: Decimal
    total_credits: Decimal

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)
