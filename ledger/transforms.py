from decimal import Decimal
from functools import reduce
from typing import Iterable, Optional, Sequence, Tuple

from ledger.domain import Category, CategoryKind, Transaction
from ledger.formatting import format_currency, format_date


def categories_of_kind(cats: Iterable[Category], kind: CategoryKind) -> Tuple[Category, ...]:
    return tuple(filter(lambda c: c.kind is kind, cats))


def count_by_kind(cats: Optional[Iterable[Category]]) -> dict:
    cats = tuple(cats or ())
    return {
        "total": len(cats),
        "revenue": len(categories_of_kind(cats, CategoryKind.REVENUE)),
        "expense": len(categories_of_kind(cats, CategoryKind.EXPENSE)),
    }


def total_amount(trans: Optional[Iterable[Transaction]]) -> Decimal:
    return reduce(lambda acc, t: acc + t.amount, trans or (), Decimal("0"))


def kind_label(kind: CategoryKind) -> str:
    return "Revenue" if kind is CategoryKind.REVENUE else "Expense"


def category_label(t: Transaction, cats: Sequence[Category] = ()) -> str:
    """Embedded snapshot name, then a lookup in the cached categories, then #id."""
    if t.category is not None:
        return t.category.name
    by_id = {c.id: c.name for c in cats}
    return by_id.get(t.category_id, f"#{t.category_id}")


def category_rows(cats: Iterable[Category]) -> list[dict]:
    return [{"ID": c.id, "Name": c.name, "Type": kind_label(c.kind)} for c in cats]


def transaction_rows(trans: Iterable[Transaction], cats: Sequence[Category] = ()) -> list[dict]:
    return [
        {
            "Description": t.description,
            "Amount": format_currency(t.amount),
            "Date": format_date(t.date),
            "Category": category_label(t, cats),
        }
        for t in trans
    ]
