from pydantic import BaseModel, Field, constr
from datetime import date, datetime
from typing import Literal, Optional

MonthKey = constr(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
SpendType = Literal["need", "want"]


# --- auth ---


class UserBase(BaseModel):
    username: constr(min_length=3, max_length=50)


class UserCreate(UserBase):
    email: constr(min_length=3, max_length=254)
    password: constr(min_length=6)


class UserLogin(BaseModel):
    email: str
    password: str


class UserOut(UserBase):
    id: int
    email: str
    google_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    username: Optional[constr(min_length=3, max_length=50)] = None
    email: Optional[constr(min_length=3, max_length=254)] = None


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: constr(min_length=6)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# --- monthly records ---


class ExpenseBreakdown(BaseModel):
    emi: float = Field(0, ge=0)
    rent: float = Field(0, ge=0)
    grocery: float = Field(0, ge=0)
    electricity: float = Field(0, ge=0)
    other_bills: float = Field(0, ge=0)
    subscriptions: float = Field(0, ge=0)
    petrol: float = Field(0, ge=0)
    other_expense: float = Field(0, ge=0)


class SavingsBreakdown(BaseModel):
    sip: float = Field(0, ge=0)
    fd_rd: float = Field(0, ge=0)
    gold: float = Field(0, ge=0)
    cash: float = Field(0, ge=0)


class MonthlyRecordIn(BaseModel):
    month: MonthKey
    income: float = Field(0, ge=0)
    expenses: Optional[ExpenseBreakdown] = None
    savings: Optional[SavingsBreakdown] = None
    notes: Optional[str] = None


class LedgerTransaction(BaseModel):
    id: int
    title: str
    amount: float
    category: Optional[str] = None
    type: str
    date: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletEntry(BaseModel):
    id: int
    title: str
    amount: float
    category: Optional[str] = None
    date: Optional[datetime] = None

    class Config:
        from_attributes = True


class Wallet(BaseModel):
    limit: float = 0
    spent: float = 0
    rolled_over: bool = False
    transactions: list[WalletEntry] = []


class MonthlyRecordOut(BaseModel):
    id: int
    month: str
    income: float
    expenses: ExpenseBreakdown
    savings: SavingsBreakdown
    notes: Optional[str] = None
    wallet: Wallet
    transactions: list[LedgerTransaction] = []
    total_needs: float = 0
    total_wants: float = 0

    @classmethod
    def from_record(cls, record):
        return cls(
            id=record.id,
            month=record.month,
            income=record.income or 0,
            expenses=ExpenseBreakdown(**(record.expenses or {})),
            savings=SavingsBreakdown(**(record.savings or {})),
            notes=record.notes,
            wallet=Wallet(
                limit=record.wallet_limit or 0,
                spent=record.wallet_spent or 0,
                rolled_over=bool(record.wallet_rolled_over),
                transactions=[
                    WalletEntry.model_validate(t) for t in record.wallet_transactions
                ],
            ),
            transactions=[
                LedgerTransaction.model_validate(t) for t in record.transactions
            ],
            total_needs=record.total_needs or 0,
            total_wants=record.total_wants or 0,
        )


# --- expenses ---


class ExpenseCreate(BaseModel):
    title: constr(min_length=1)
    amount: float = Field(..., gt=0)
    category: constr(min_length=1)
    type: SpendType = "want"
    date: Optional[datetime] = None


class ExpenseOut(BaseModel):
    id: int
    title: str
    amount: float
    category: str
    type: Optional[str] = None
    source: Optional[str] = None
    date: datetime

    class Config:
        from_attributes = True


class LedgerAdd(BaseModel):
    month: MonthKey
    title: constr(min_length=1)
    amount: float = Field(..., gt=0)
    category: constr(min_length=1)
    type: SpendType


class LedgerDelete(BaseModel):
    month: MonthKey
    transaction_id: int


# --- wallet ---


class WalletSetup(BaseModel):
    month: MonthKey
    limit: float = Field(..., ge=0)


class WalletSpend(BaseModel):
    amount: float = Field(..., gt=0)
    category: constr(min_length=1)
    title: Optional[str] = None


class WalletRollover(BaseModel):
    month: MonthKey


# --- profile ---


class ProfileUpdate(BaseModel):
    currency: Optional[str] = None
    net_earnings: Optional[float] = None
    expenses: Optional[dict] = None
    demographics: Optional[dict] = None
    lifestyle: Optional[dict] = None
    savings: Optional[dict] = None
    notes: Optional[str] = None


# --- notifications ---


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: str
    is_read: bool
    date: datetime

    class Config:
        from_attributes = True


# --- goals / advisory ---


class GoalCreate(BaseModel):
    title: constr(min_length=1)
    target_amount: float = Field(..., gt=0)
    deadline: Optional[date] = None
    priority: Literal["High", "Medium", "Low"] = "Medium"


class GoalProgress(BaseModel):
    goal_id: int
    amount: float = Field(..., gt=0)


class GoalOut(BaseModel):
    id: int
    title: str
    target_amount: float
    saved_amount: float
    deadline: Optional[date] = None
    priority: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AffordabilityCheck(BaseModel):
    cost: float = Field(..., ge=0)


class AssetAudit(BaseModel):
    type: Literal["house", "car"]
    value: float = Field(..., gt=0)
    emi_amount: float = Field(0, ge=0)
    tenure_years: float = Field(0, ge=0)
    location: Optional[str] = None
