"""Form models for the Categories and Revenues/Expenses pages.

Forms keep the raw widget values (strings, or a date from a date picker),
validate them into a create payload and hand it to a Mutation. Validation
never touches the network: a rejected form publishes a warning notification
and submit returns None.
"""
import logging
import datetime as dt
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Sequence, Union

from ledger.domain import (
    DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH,
    Category, CategoryKind, CreateCategoryPayload, CreateTransactionPayload, Transaction,
)
from ledger.errors import LedgerError, ValidationFailure
from ledger.events import ERROR, SUCCESS, WARNING, EventBus
from ledger.query import Mutation, QueryCache, QueryKey
from ledger.resources import Api
from ledger.transforms import categories_of_kind

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

RULE_TITLES = {
    "required": "Required fields",
    "max_length": "Value too long",
    "positive_number": "Invalid amount",
    "invalid_date": "Invalid date",
    "kind_mismatch": "Invalid category",
}


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def parse_amount(raw) -> Decimal:
    """'1.234,5' style input is not supported; a single decimal comma is."""
    text = _text(raw).replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationFailure("amount", "positive_number", "Enter a number greater than zero.") from None
    if not amount.is_finite():
        raise ValidationFailure("amount", "positive_number", "Enter a number greater than zero.")
    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context holds
        raise ValidationFailure("amount", "positive_number", "Enter a smaller amount.") from None
    if amount <= 0:
        raise ValidationFailure("amount", "positive_number", "Enter a number greater than zero.")
    return amount


def parse_date(raw) -> dt.date:
    if isinstance(raw, dt.date):
        return raw
    try:
        return dt.date.fromisoformat(_text(raw))
    except ValueError:
        raise ValidationFailure("date", "invalid_date", "Use a calendar date (YYYY-MM-DD).") from None


@dataclass
class CategoryForm:
    name: str = ""
    kind: Optional[CategoryKind] = None

    def to_payload(self) -> CreateCategoryPayload:
        name = _text(self.name)
        if not name or self.kind is None:
            raise ValidationFailure(
                "name" if not name else "kind", "required", "Fill in the name and pick a type."
            )
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationFailure(
                "name", "max_length", f"The name must have at most {NAME_MAX_LENGTH} characters."
            )
        return CreateCategoryPayload(name=name, kind=self.kind)

    def clear(self) -> None:
        self.name = ""
        self.kind = None


@dataclass
class TransactionForm:
    kind: CategoryKind
    description: str = ""
    amount: str = ""
    category_id: Union[str, int, None] = ""
    date: Union[str, dt.date, None] = ""

    def category_options(self, cats: Sequence[Category]) -> tuple:
        """Only categories of this form's kind are offered in the selector."""
        return categories_of_kind(cats, self.kind)

    def to_payload(self, cats: Optional[Sequence[Category]] = None) -> CreateTransactionPayload:
        description = _text(self.description)
        fields = {
            "description": description,
            "amount": _text(self.amount),
            "category_id": _text(self.category_id),
            "date": self.date if isinstance(self.date, dt.date) else _text(self.date),
        }
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ValidationFailure(missing[0], "required", "Fill in every field before saving.")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationFailure(
                "description", "max_length",
                f"The description must have at most {DESCRIPTION_MAX_LENGTH} characters.",
            )
        amount = parse_amount(self.amount)
        try:
            category_id = int(fields["category_id"])
        except ValueError:
            raise ValidationFailure("category_id", "kind_mismatch", "Pick a category from the list.") from None
        if cats is not None and category_id not in {c.id for c in self.category_options(cats)}:
            raise ValidationFailure("category_id", "kind_mismatch", "Pick a category from the list.")
        return CreateTransactionPayload(
            description=description,
            amount=amount,
            category_id=category_id,
            date=parse_date(self.date),
        )

    def clear(self) -> None:
        self.description = ""
        self.amount = ""
        self.category_id = ""
        self.date = ""


def category_mutation(api: Api, cache: QueryCache) -> Mutation:
    return Mutation(api.create_category, cache, invalidates=[QueryKey.CATEGORIES])


def transaction_mutation(api: Api, cache: QueryCache, kind: CategoryKind) -> Mutation:
    async def create(payload: CreateTransactionPayload) -> Transaction:
        return await api.create_transaction(kind, payload)

    key = QueryKey.REVENUES if kind is CategoryKind.REVENUE else QueryKey.EXPENSES
    return Mutation(create, cache, invalidates=[key])


def _warn(bus: EventBus, failure: ValidationFailure) -> None:
    logger.info(f"Form rejected: {failure.field} ({failure.rule})")
    bus.notify(WARNING, RULE_TITLES.get(failure.rule, "Invalid input"), failure.message)


async def _submit(form, payload, mutation: Mutation, bus: EventBus, success: str, failure: str):
    try:
        created = await mutation.run(payload)
    except LedgerError as e:
        # fields stay populated so the user can retry
        bus.notify(ERROR, failure, e.message)
        return None
    form.clear()
    bus.notify(SUCCESS, success)
    return created


async def submit_category(form: CategoryForm, mutation: Mutation, bus: EventBus) -> Optional[Category]:
    try:
        payload = form.to_payload()
    except ValidationFailure as e:
        _warn(bus, e)
        return None
    return await _submit(form, payload, mutation, bus, "Category created!", "Could not create category")


async def submit_transaction(
    form: TransactionForm,
    mutation: Mutation,
    bus: EventBus,
    cats: Optional[Sequence[Category]] = None,
) -> Optional[Transaction]:
    try:
        payload = form.to_payload(cats)
    except ValidationFailure as e:
        _warn(bus, e)
        return None
    noun = "Revenue" if form.kind is CategoryKind.REVENUE else "Expense"
    return await _submit(
        form, payload, mutation, bus, f"{noun} created!", f"Could not create {noun.lower()}"
    )
