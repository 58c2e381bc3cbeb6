from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ledger.errors import DeserializationFailure

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 150


class CategoryKind(Enum):
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def code(self) -> int:
        # numeric form used in the create payload (categoryType)
        return 1 if self is CategoryKind.REVENUE else 2

    @classmethod
    def from_wire(cls, raw: Any) -> "CategoryKind":
        """Accept "REVENUE"/"EXPENSE" as well as the numeric codes 1/2."""
        if isinstance(raw, bool):
            raise DeserializationFailure(f"Unknown category type: {raw!r}")
        if isinstance(raw, str):
            tag = raw.strip().upper()
            if tag.isdecimal() and tag.isascii():
                raw = int(tag)
            else:
                try:
                    return cls(tag)
                except ValueError:
                    raise DeserializationFailure(f"Unknown category type: {raw!r}") from None
        if raw == 1:
            return cls.REVENUE
        if raw == 2:
            return cls.EXPENSE
        raise DeserializationFailure(f"Unknown category type: {raw!r}")


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    kind: CategoryKind

    @classmethod
    def from_wire(cls, data: Any) -> "Category":
        if not isinstance(data, dict):
            raise DeserializationFailure(f"Expected a category object, got {type(data).__name__}")
        try:
            raw_kind = data["type"] if "type" in data else data["categoryType"]
            return cls(id=data["id"], name=data["name"], kind=CategoryKind.from_wire(raw_kind))
        except KeyError as e:
            raise DeserializationFailure(f"Category is missing field {e}") from e


@dataclass(frozen=True)
class Transaction:
    id: int
    description: str
    amount: Decimal
    date: date
    category_id: int
    category: Optional[Category] = None  # snapshot embedded by the backend, display only

    @classmethod
    def from_wire(cls, data: Any) -> "Transaction":
        if not isinstance(data, dict):
            raise DeserializationFailure(f"Expected a transaction object, got {type(data).__name__}")
        try:
            embedded = data.get("category")
            category = Category.from_wire(embedded) if embedded else None
            category_id = data.get("categoryId")
            if category_id is None and category is not None:
                category_id = category.id
            if category_id is None:
                raise KeyError("categoryId")
            return cls(
                id=data["id"],
                description=data["description"],
                amount=Decimal(str(data["amount"])),
                date=date.fromisoformat(str(data["date"])[:10]),
                category_id=category_id,
                category=category,
            )
        except DeserializationFailure:
            raise
        except KeyError as e:
            raise DeserializationFailure(f"Transaction is missing field {e}") from e
        except (InvalidOperation, ValueError) as e:
            raise DeserializationFailure(f"Malformed transaction: {e}") from e


@dataclass(frozen=True)
class CreateCategoryPayload:
    name: str
    kind: CategoryKind

    def to_wire(self) -> dict:
        return {"name": self.name, "categoryType": self.kind.code}


@dataclass(frozen=True)
class CreateTransactionPayload:
    description: str
    amount: Decimal
    category_id: int
    date: date

    def to_wire(self) -> dict:
        return {
            "description": self.description,
            "amount": float(self.amount),
            "categoryId": self.category_id,
            "date": self.date.isoformat(),
        }
