from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from anchor.domain.constants import PolicyStatus, Recurrence


PolicyType = Literal["auto", "home", "life", "health", "commercial", "travel", "umbrella", "other"]
PaymentFrequency = Literal["monthly", "quarterly", "semi_annual", "annual"]


class _Payload(BaseModel):
    # Unknown fields are rejected so tenant_id cannot be smuggled in.
    model_config = {"extra": "forbid"}

    def provided(self) -> dict[str, Any]:
        # Only fields the caller actually sent; an explicit null clears a value.
        return {name: getattr(self, name) for name in self.model_fields_set}


class PolicyCreate(_Payload):
    type: PolicyType
    custom_type: str | None = None
    carrier: str | None = None
    policy_number: str | None = None
    status: PolicyStatus = "draft"
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    premium: Decimal | None = Field(default=None, ge=0)
    coverage_amount: Decimal | None = Field(default=None, ge=0)
    deductible: Decimal | None = Field(default=None, ge=0)
    payment_frequency: PaymentFrequency | None = None
    broker_commission: Decimal | None = Field(default=None, ge=0, le=100)
    notes: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "PolicyCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PolicyUpdate(_Payload):
    type: PolicyType | None = None
    custom_type: str | None = None
    carrier: str | None = None
    policy_number: str | None = None
    status: PolicyStatus | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    premium: Decimal | None = Field(default=None, ge=0)
    coverage_amount: Decimal | None = Field(default=None, ge=0)
    deductible: Decimal | None = Field(default=None, ge=0)
    payment_frequency: PaymentFrequency | None = None
    broker_commission: Decimal | None = Field(default=None, ge=0, le=100)
    notes: str | None = None


class ExpenseCreate(_Payload):
    amount: Decimal = Field(gt=0)
    category: str = Field(min_length=1)
    date: dt.date
    description: str | None = None
    is_recurring: bool = False
    recurrence: Recurrence | None = None

    @model_validator(mode="after")
    def _check_recurrence(self) -> "ExpenseCreate":
        if self.is_recurring and self.recurrence is None:
            raise ValueError("recurrence is required when is_recurring is true")
        return self


class ExpenseUpdate(_Payload):
    amount: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=1)
    date: dt.date | None = None
    description: str | None = None
    is_recurring: bool | None = None
    recurrence: Recurrence | None = None


class PolicyOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    client_id: str
    type: str
    custom_type: str | None = None
    carrier: str | None = None
    policy_number: str | None = None
    status: str
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    premium: Decimal | None = None
    coverage_amount: Decimal | None = None
    deductible: Decimal | None = None
    payment_frequency: str | None = None
    broker_commission: Decimal | None = None
    notes: str | None = None


class RenewalChanges(BaseModel):
    created: int = 0
    updated: int = 0
    deleted: int = 0


class PolicyMutationOut(BaseModel):
    policy: PolicyOut
    # None when the mutation had no renewal side effect.
    renewal: RenewalChanges | None = None
    renewal_error: str | None = None


class ExpenseOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    amount: Decimal
    category: str
    description: str | None = None
    date: dt.date
    status: str
    is_recurring: bool
    recurrence: str | None = None
    next_occurrence: dt.date | None = None
    parent_expense_id: str | None = None
