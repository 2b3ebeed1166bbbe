from pydantic import BaseModel, Field, PlainSerializer, field_validator
from typing import Annotated, Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP
from uuid import uuid4


def _round_money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# Full precision internally, two decimals on the wire.
Money = Annotated[Decimal,
                  PlainSerializer(_round_money, return_type=float,
                                  when_used="json")]


class Participant(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Participant name must not be empty')
        return v.strip()

    @field_validator('email')
    @classmethod
    def email_looks_valid(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if '@' not in v:
            raise ValueError('Invalid email address')
        return v


class Category(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Category name must not be empty')
        return v.strip()


class Expense(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    amount: Money
    date: date
    payer_id: str
    beneficiary_ids: List[str]
    category_id: Optional[str] = None

    @field_validator('title')
    @classmethod
    def title_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Expense title must not be empty')
        return v.strip()

    @field_validator('amount')
    @classmethod
    def amount_positive(cls, v):
        if v <= 0:
            raise ValueError('Amount must be greater than 0')
        return v

    @field_validator('beneficiary_ids')
    @classmethod
    def beneficiaries_valid(cls, v):
        if not v or len(v) == 0:
            raise ValueError('At least one beneficiary is required')
        if len(set(v)) != len(v):
            raise ValueError('A beneficiary can only be listed once')
        return v


class Workspace(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    created_at: datetime = Field(default_factory=datetime.now)
    read_only: bool = False
    participants: List[Participant] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Workspace name must not be empty')
        return v.strip()


class ReportFilters(BaseModel):
    exact_match: List[str] = Field(default_factory=list)
    any_match: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    paid_by: List[str] = Field(default_factory=list)
    include_categories: List[str] = Field(default_factory=list)
    exclude_categories: List[str] = Field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class ReportContext(BaseModel):
    """Which workspace to read and how to narrow its expenses."""
    workspace_id: str
    filters: ReportFilters = Field(default_factory=ReportFilters)


class LedgerSnapshot(BaseModel):
    participants: List[Participant] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)


class Balance(BaseModel):
    participant_id: str
    participant_name: str
    total_paid: Money
    total_owed: Money
    balance: Money


class Transfer(BaseModel):
    from_participant_id: str
    from_participant_name: str
    to_participant_id: str
    to_participant_name: str
    amount: Money


class Settlement(BaseModel):
    balances: List[Balance]
    transfers: List[Transfer]
    residual: Money = Decimal(0)


class CategoryTotal(BaseModel):
    category_id: str
    category_name: str
    total: Money
    percentage: Money
    count: int


class PersonTotal(BaseModel):
    participant_id: str
    participant_name: str
    total_paid: Money
    expense_count: int
    highest_expense: Money
    category_totals: Dict[str, Money] = Field(default_factory=dict)


class PersonCost(BaseModel):
    participant_id: str
    participant_name: str
    total_cost: Money
    expense_count: int


class DayTotal(BaseModel):
    date: date
    total: Money
    count: int


class TrendPoint(BaseModel):
    bucket_start: date
    label: str
    amount: Money


class Badge(BaseModel):
    title: str
    participant_name: str
    amount: Money


class Leaderboard(BaseModel):
    rankings: List[PersonTotal]
    top_payers: List[PersonTotal]
    badges: List[Badge]


class AnalyticsSummary(BaseModel):
    total: Money
    expense_count: int
    average_per_day: Money
    average_per_person: Money
    fairness_score: Money
    most_expensive_category: Optional[CategoryTotal] = None
    category_totals: List[CategoryTotal]
    person_totals: List[PersonTotal]
    top_days: List[DayTotal]
