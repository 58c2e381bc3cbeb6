import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import logging

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from ledger.api import ApiClient
from ledger.config import Config
from ledger.domain import CategoryKind, DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH
from ledger.events import EventBus, SUCCESS, WARNING
from ledger.formatting import format_currency
from ledger.forms import (
    CategoryForm,
    TransactionForm,
    category_mutation,
    transaction_mutation,
    submit_category,
    submit_transaction,
)
from ledger.query import QueryCache, QueryKey
from ledger.reports import load_dashboard, dashboard_summary, monthly_report
from ledger.resources import Api, register_queries
from ledger.transforms import category_rows, transaction_rows, kind_label

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Ledger Dashboard", layout="wide")


def run(coro):
    return asyncio.run(coro)


if "api" not in st.session_state:
    st.session_state.api = Api(ApiClient(Config.API_BASE_URL))

if "query_cache" not in st.session_state:
    st.session_state.query_cache = register_queries(QueryCache(), st.session_state.api)

if "notifications" not in st.session_state:
    st.session_state.notifications = []

if "bus" not in st.session_state:
    st.session_state.bus = EventBus()
    st.session_state.bus.collect(st.session_state.notifications)

if "mutations" not in st.session_state:
    api, cache = st.session_state.api, st.session_state.query_cache
    st.session_state.mutations = {
        QueryKey.CATEGORIES: category_mutation(api, cache),
        QueryKey.REVENUES: transaction_mutation(api, cache, CategoryKind.REVENUE),
        QueryKey.EXPENSES: transaction_mutation(api, cache, CategoryKind.EXPENSE),
    }

api: Api = st.session_state.api
cache: QueryCache = st.session_state.query_cache
bus: EventBus = st.session_state.bus

TOAST_ICONS = {SUCCESS: "✅", WARNING: "⚠️"}


def show_notifications():
    while st.session_state.notifications:
        note = st.session_state.notifications.pop(0)
        text = f"**{note.title}**" + (f"\n\n{note.description}" if note.description else "")
        st.toast(text, icon=TOAST_ICONS.get(note.level, "🔴"))


def load_failed(what: str, state):
    st.error(f"⚠️ Could not load {what}")
    st.caption(f"Check that the API is reachable at {api.client.base_url} and try again.")
    if state.error is not None:
        st.caption(state.error.message)


def _count(value):
    return "—" if value is None else value


PAGES = {
    "revenue": {
        "title": "💰 Revenues",
        "subtitle": "Manage your revenues",
        "form_title": "➕ New Revenue",
        "list_title": "📈 Recorded Revenues",
        "empty": "No revenues recorded",
        "kind": CategoryKind.REVENUE,
        "key": QueryKey.REVENUES,
    },
    "expense": {
        "title": "💸 Expenses",
        "subtitle": "Manage your expenses",
        "form_title": "➕ New Expense",
        "list_title": "📉 Recorded Expenses",
        "empty": "No expenses recorded",
        "kind": CategoryKind.EXPENSE,
        "key": QueryKey.EXPENSES,
    },
}


def on_category_submit():
    form = CategoryForm(name=st.session_state.cat_name, kind=st.session_state.cat_kind)
    run(submit_category(form, st.session_state.mutations[QueryKey.CATEGORIES], bus))
    st.session_state.cat_name = form.name
    st.session_state.cat_kind = form.kind


def on_transaction_submit(page: str):
    cfg = PAGES[page]
    form = TransactionForm(
        kind=cfg["kind"],
        description=st.session_state[f"{page}_description"],
        amount=st.session_state[f"{page}_amount"],
        category_id=st.session_state[f"{page}_category"],
        date=st.session_state[f"{page}_date"],
    )
    cats = cache.state(QueryKey.CATEGORIES).data
    run(submit_transaction(form, st.session_state.mutations[cfg["key"]], bus, cats))
    st.session_state[f"{page}_description"] = form.description
    st.session_state[f"{page}_amount"] = form.amount
    st.session_state[f"{page}_category"] = form.category_id or None
    st.session_state[f"{page}_date"] = form.date or None


def transaction_page(page: str):
    cfg = PAGES[page]
    st.title(cfg["title"])
    st.caption(cfg["subtitle"])

    states = run(cache.read_many([cfg["key"], QueryKey.CATEGORIES]))
    tx_state = states[cfg["key"]]
    cats = states[QueryKey.CATEGORIES].data or []
    options = TransactionForm(kind=cfg["kind"]).category_options(cats)
    names = {c.id: c.name for c in options}

    form_col, list_col = st.columns([1, 2])

    with form_col:
        st.subheader(cfg["form_title"])
        with st.form(f"{page}_form"):
            st.text_input(
                "Description",
                placeholder="e.g. Monthly salary",
                max_chars=DESCRIPTION_MAX_LENGTH,
                key=f"{page}_description",
            )
            st.text_input("Amount (R$)", placeholder="0,00", key=f"{page}_amount")
            st.selectbox(
                "Category",
                options=list(names),
                format_func=lambda cid: names.get(cid, f"#{cid}"),
                index=None,
                placeholder="Select a category" if names else "No category available",
                key=f"{page}_category",
            )
            st.date_input("Date", value=None, format="DD/MM/YYYY", key=f"{page}_date")
            st.form_submit_button(
                "Save",
                use_container_width=True,
                disabled=st.session_state.mutations[cfg["key"]].is_pending,
                on_click=on_transaction_submit,
                args=(page,),
            )

    with list_col:
        st.subheader(cfg["list_title"])
        if tx_state.is_loading:
            st.caption("⏳ Loading...")
        elif tx_state.is_error:
            load_failed("the data", tx_state)
        elif not tx_state.data:
            st.info(cfg["empty"])
        else:
            st.dataframe(
                pd.DataFrame(transaction_rows(tx_state.data, cats)),
                use_container_width=True,
                hide_index=True,
            )
        if st.button("🔄 Refresh", key=f"{page}_refresh"):
            run(cache.invalidate(cfg["key"]))
            st.rerun()


st.sidebar.markdown("### 📒 Ledger")
st.sidebar.caption(f"API: {api.client.base_url}")

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🏷️ Categories", "💰 Revenues", "💸 Expenses", "📑 Reports"]
)

logger.debug(f"Rendering {menu}")
show_notifications()

if menu == "🏠 Dashboard":
    st.title("🏠 Financial Management")
    st.caption("Overview of your finances")

    states = run(load_dashboard(cache))
    summary = dashboard_summary(states)

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Categories", _count(summary["categories"]))
        st.caption("registered")
    with k2:
        st.metric("Revenue categories", _count(summary["revenue_categories"]))
        st.caption("revenue categories")
    with k3:
        st.metric("Expense categories", _count(summary["expense_categories"]))
        st.caption("expense categories")
    with k4:
        st.metric("Balance", format_currency(summary["balance"]))
        st.caption("revenues minus expenses")

    if summary["errors"]:
        st.warning("Some data could not be loaded: " + ", ".join(summary["errors"]))

    fig = go.Figure(
        data=[
            go.Bar(
                x=["Revenues", "Expenses"],
                y=[float(summary["revenue_total"]), float(summary["expense_total"])],
                marker_color=["#16a34a", "#dc2626"],
            )
        ]
    )
    fig.update_layout(title="Totals (R$)", template="plotly_dark")
    st.plotly_chart(fig, use_container_width=True)

elif menu == "🏷️ Categories":
    st.title("🏷️ Categories")
    st.caption("Manage revenue and expense categories")

    state = run(cache.read(QueryKey.CATEGORIES))
    form_col, list_col = st.columns([1, 2])

    with form_col:
        st.subheader("➕ New Category")
        with st.form("category_form"):
            st.text_input(
                "Name",
                placeholder="e.g. Groceries",
                max_chars=NAME_MAX_LENGTH,
                key="cat_name",
            )
            st.selectbox(
                "Type",
                options=[CategoryKind.REVENUE, CategoryKind.EXPENSE],
                format_func=kind_label,
                index=None,
                placeholder="Select the type",
                key="cat_kind",
            )
            st.form_submit_button(
                "Save",
                use_container_width=True,
                disabled=st.session_state.mutations[QueryKey.CATEGORIES].is_pending,
                on_click=on_category_submit,
            )

    with list_col:
        st.subheader("📋 Registered Categories")
        if state.is_loading:
            st.caption("⏳ Loading...")
        elif state.is_error:
            load_failed("categories", state)
        elif not state.data:
            st.info("No categories registered")
        else:
            df = pd.DataFrame(category_rows(state.data))
            st.dataframe(
                df.style.map(
                    lambda v: "color: #16a34a" if v == "Revenue" else "color: #dc2626",
                    subset=["Type"],
                ),
                use_container_width=True,
                hide_index=True,
            )
        if st.button("🔄 Refresh", key="categories_refresh"):
            run(cache.invalidate(QueryKey.CATEGORIES))
            st.rerun()

elif menu == "💰 Revenues":
    transaction_page("revenue")

elif menu == "💸 Expenses":
    transaction_page("expense")

elif menu == "📑 Reports":
    st.title("📑 Monthly Report")
    st.caption("Revenues and expenses per month")

    states = run(cache.read_many([QueryKey.REVENUES, QueryKey.EXPENSES]))
    failed = [k for k, s in states.items() if s.is_error]
    if failed:
        load_failed(", ".join(failed), states[failed[0]])
    else:
        report = monthly_report(states[QueryKey.REVENUES].data, states[QueryKey.EXPENSES].data)
        if report.empty:
            st.info("No transactions recorded yet")
        else:
            chart = report.assign(
                revenue=report["revenue"].astype(float),
                expense=report["expense"].astype(float),
            )
            fig = px.bar(
                chart,
                x="month",
                y=["revenue", "expense"],
                barmode="group",
                labels={"month": "Month", "value": "Amount (R$)"},
                title="Revenues vs Expenses",
                template="plotly_dark",
            )
            st.plotly_chart(fig, use_container_width=True)

            display = report.copy()
            for col in ("revenue", "expense", "balance"):
                display[col] = display[col].map(format_currency)
            st.dataframe(display, use_container_width=True, hide_index=True)
