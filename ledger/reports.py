from decimal import Decimal
from typing import Dict, Iterable, Optional

import pandas as pd

from ledger.domain import Transaction
from ledger.query import QueryCache, QueryKey, QueryState
from ledger.transforms import count_by_kind, total_amount

DASHBOARD_KEYS = (QueryKey.CATEGORIES, QueryKey.REVENUES, QueryKey.EXPENSES)
MONTHLY_COLUMNS = ["month", "revenue", "expense", "balance"]


async def load_dashboard(cache: QueryCache) -> Dict[str, QueryState]:
    """Read the three collections concurrently; each key keeps its own state."""
    return await cache.read_many(DASHBOARD_KEYS)


def dashboard_summary(states: Dict[str, QueryState]) -> dict:
    """Counts and totals for the overview cards.

    A key that failed to load contributes nothing; its entry in
    "errors" tells the page which cards to flag.
    """
    cats = states[QueryKey.CATEGORIES].data
    revenues = states[QueryKey.REVENUES].data
    expenses = states[QueryKey.EXPENSES].data
    counts = count_by_kind(cats)
    revenue_total = total_amount(revenues)
    expense_total = total_amount(expenses)
    return {
        "categories": counts["total"] if cats is not None else None,
        "revenue_categories": counts["revenue"] if cats is not None else None,
        "expense_categories": counts["expense"] if cats is not None else None,
        "revenue_total": revenue_total,
        "expense_total": expense_total,
        "balance": revenue_total - expense_total,
        "errors": [key for key, state in states.items() if state.is_error],
    }


def _monthly(trans: Optional[Iterable[Transaction]], column: str) -> pd.Series:
    rows = [{"month": t.date.strftime("%Y-%m"), column: t.amount} for t in trans or ()]
    if not rows:
        return pd.Series(dtype=object, name=column)
    df = pd.DataFrame(rows)
    return df.groupby("month")[column].apply(lambda s: sum(s, Decimal("0")))


def monthly_report(
    revenues: Optional[Iterable[Transaction]],
    expenses: Optional[Iterable[Transaction]],
) -> pd.DataFrame:
    """Revenue, expense and balance per YYYY-MM, oldest month first."""
    rev = _monthly(revenues, "revenue")
    exp = _monthly(expenses, "expense")
    months = sorted(set(rev.index) | set(exp.index))
    if not months:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)
    df = pd.DataFrame({"month": months})
    df["revenue"] = [rev.get(m, Decimal("0")) for m in months]
    df["expense"] = [exp.get(m, Decimal("0")) for m in months]
    df["balance"] = df["revenue"] - df["expense"]
    return df[MONTHLY_COLUMNS]
