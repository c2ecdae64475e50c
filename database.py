from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    ForeignKey,
    Boolean,
    JSON,
    UniqueConstraint,
    insert,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, declarative_base, relationship
from sqlalchemy.pool import StaticPool
from datetime import date as _date, datetime

from config import DATABASE_URL

EXPENSE_FIELDS = (
    "emi",
    "rent",
    "grocery",
    "electricity",
    "other_bills",
    "subscriptions",
    "petrol",
    "other_expense",
)
SAVINGS_FIELDS = ("sip", "fd_rd", "gold", "cash")


def default_expenses():
    return {name: 0.0 for name in EXPENSE_FIELDS}


def default_savings():
    return {name: 0.0 for name in SAVINGS_FIELDS}


def default_profile():
    return {
        "currency": "INR",
        "net_earnings": 0.0,
        "expenses": default_expenses(),
        "demographics": {
            "marital_status": "single",
            "has_children": "no",
            "school_fees": 0.0,
        },
        "lifestyle": {"party_budget": 0.0},
        "savings": {"sip": 0.0, "fd_rd": 0.0, "gold": 0.0},
        "notes": "",
        "is_profile_complete": False,
    }


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # in-memory databases live on a single shared connection
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=True)
    google_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    profile = Column(JSON, default=default_profile)


class MonthlyRecord(Base):
    __tablename__ = "monthly_records"
    __table_args__ = (UniqueConstraint("user_id", "month", name="uq_user_month"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    month = Column(String(7), nullable=False, index=True)
    income = Column(Float, default=0.0)
    expenses = Column(JSON, default=default_expenses)
    savings = Column(JSON, default=default_savings)
    notes = Column(String, nullable=True)

    wallet_limit = Column(Float, default=0.0)
    wallet_spent = Column(Float, default=0.0)
    wallet_rolled_over = Column(Boolean, default=False)

    total_needs = Column(Float, default=0.0)
    total_wants = Column(Float, default=0.0)

    transactions = relationship(
        "RecordTransaction",
        cascade="all, delete-orphan",
        order_by="RecordTransaction.id",
    )
    wallet_transactions = relationship(
        "WalletTransaction",
        cascade="all, delete-orphan",
        order_by="WalletTransaction.id",
    )


class RecordTransaction(Base):
    __tablename__ = "record_transactions"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("monthly_records.id"), nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String, index=True)
    type = Column(String, nullable=False)
    date = Column(DateTime, default=datetime.now)


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("monthly_records.id"), nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String)
    date = Column(DateTime, default=datetime.now)


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String, index=True, nullable=False)
    type = Column(String, default="want")
    source = Column(String, default="manual")
    date = Column(DateTime, default=datetime.now, index=True)


class Goal(Base):
    __tablename__ = "goals"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    target_amount = Column(Float, nullable=False)
    saved_amount = Column(Float, default=0.0)
    deadline = Column(Date, nullable=True)
    priority = Column(String, default="Medium")
    status = Column(String, default="Active")
    created_at = Column(DateTime, default=datetime.now)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint("user_id", "title", "day", name="uq_user_title_day"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    type = Column(String, default="info")
    is_read = Column(Boolean, default=False)
    date = Column(DateTime, default=datetime.now, index=True)
    day = Column(Date, default=_date.today, nullable=False)


Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def insert_ignore(db, model, values: dict, index_elements) -> bool:
    """
    INSERT a row unless it collides with the unique key ``index_elements``.
    Returns True when the row was written.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values)
    elif dialect == "postgresql":
        stmt = pg_insert(model).values(**values)
    else:
        try:
            with db.begin_nested():
                db.execute(insert(model).values(**values))
        except IntegrityError:
            return False
        return True

    result = db.execute(stmt.on_conflict_do_nothing(index_elements=index_elements))
    return result.rowcount == 1
