"""
models.py - Shared Data Models
Common: row shapes exchanged between the database gateway and the API.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional


# ─────────────────────────────────────────────
# WIRE SENTINELS
# ─────────────────────────────────────────────
ALL_CATEGORIES       = "всё"          # request value: no category filter
ALL_CATEGORIES_LABEL = "Всё"          # category_name attached when unfiltered
ALL_TIME             = "всё время"

# srok -> how many calendar months to look back
PERIOD_MONTHS = {
    "месяц": 1,
    "три месяца": 3,
    "год": 12,
}


@dataclass
class User:
    id: int
    login: str
    password: Optional[str] = None   # bcrypt hash, never sent to clients

    def public_dict(self):
        return {"id": self.id, "login": self.login}

    @staticmethod
    def from_row(row: dict) -> "User":
        return User(id=row["id"], login=row["login"], password=row.get("password"))


@dataclass
class Category:
    id: int
    name: str

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_row(row: dict) -> "Category":
        return Category(id=row["id"], name=row["name"])


@dataclass
class Transaction:
    """One row of the transactions table as returned by /getTransactions."""
    user_id: int
    category_id: int
    amount: Decimal
    date: datetime
    description: Optional[str] = None
    category_name: Optional[str] = None

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_row(row: dict) -> "Transaction":
        return Transaction(
            user_id=row["user_id"],
            category_id=row["category_id"],
            amount=row["amount"],
            date=row["date"],
            description=row.get("description"),
        )
