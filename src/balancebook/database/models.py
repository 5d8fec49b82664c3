"""SQLAlchemy models for balancebook database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Cash account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    opening_balance = Column(Integer, default=0, nullable=False)
    closing_balance = Column(Integer, default=0, nullable=False)
    owner_user_id = Column(String, nullable=False)
    group_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    entries = relationship("LedgerEntry", back_populates="account")


class Category(Base):
    """Category model carrying a balance-sheet subgroup and sequence code."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    subgroup = Column(String, nullable=True)
    sequence_code = Column(Integer, nullable=True)
    owner_user_id = Column(String, nullable=True)
    group_id = Column(String, nullable=True)
    scope_key = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # NULL codes never collide, so product/market categories are unaffected
    __table_args__ = (UniqueConstraint("scope_key", "sequence_code", name="uq_scope_sequence_code"),)

    # Relationships
    products = relationship("Product", back_populates="category")


class Product(Base):
    """Product model."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    owner_user_id = Column(String, nullable=True)
    group_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    category = relationship("Category", back_populates="products")
    items = relationship("LedgerItem", back_populates="product")


class LedgerEntry(Base):
    """Ledger entry header model."""

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True)
    owner_user_id = Column(String, nullable=False)
    group_id = Column(String, nullable=True)
    kind = Column(String, nullable=False)
    debit_amount = Column(Integer, default=0, nullable=False)
    credit_amount = Column(Integer, default=0, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    description = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("Account", back_populates="entries")
    items = relationship("LedgerItem", back_populates="entry")


class LedgerItem(Base):
    """Ledger line item model."""

    __tablename__ = "ledger_items"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Integer, nullable=False)

    # Relationships
    entry = relationship("LedgerEntry", back_populates="items")
    product = relationship("Product", back_populates="items")


class ClassificationRule(Base):
    """Keyword rule mapping a LIKE pattern to a subgroup."""

    __tablename__ = "classification_rules"

    id = Column(Integer, primary_key=True)
    pattern = Column(String, nullable=False)
    target_subgroup = Column(String, nullable=False)
    priority = Column(Integer, nullable=True)
    owner_user_id = Column(String, nullable=True)
    group_id = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
