import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from ledger.config import configure_logging, load_settings
from ledger.domain import CATEGORIES, EXPENSE, INCOME
from ledger.errors import DuplicateBudgetError, LedgerError
from ledger.events import NotificationCenter
from ledger.filters import TransactionFilter
from ledger.frames import (
    budgets_to_frame,
    category_sums_to_frame,
    monthly_totals_to_frame,
    transactions_to_frame,
)
from ledger.assistant import quick_actions
from ledger.services import FinanceTracker
from ledger.store import SQLiteStore

settings = load_settings()
configure_logging(settings)

st.set_page_config(page_title="Finance AI", layout="wide")

if "notifications" not in st.session_state:
    st.session_state.notifications = NotificationCenter()
if "chat" not in st.session_state:
    st.session_state.chat = []


def run(action):
    """Open the store, run one tracker action, close the store."""
    async def _go():
        async with SQLiteStore(settings.db_path, settings.reset_on_schema_change) as store:
            tracker = FinanceTracker(store, settings, notifications=st.session_state.notifications)
            return await action(tracker)
    return asyncio.run(_go())


def money(x: float) -> str:
    return f"{settings.currency_symbol}{x:,.0f}"


async def load_dashboard(tracker: FinanceTracker):
    result = await tracker.refresh()
    return {
        "result": result,
        "stats": await tracker.analytics.monthly_stats(),
        "totals": await tracker.analytics.monthly_totals(6),
        "sums": await tracker.analytics.category_sums_for_month(),
        "transactions": await tracker.analytics.all_transactions(),
        "achievements": await tracker.gamification.get_all_achievements(),
    }


data = run(load_dashboard)
for a in data["result"].unlocked:
    st.toast(f"{a.icon} {a.title} unlocked!")

inbox = st.session_state.notifications
st.sidebar.markdown(f"### 🔔 Notifications ({inbox.unread_count()})")
for n in inbox.items[:5]:
    st.sidebar.caption(f"{'•' if not n.read else ' '} {n.title}")
if st.sidebar.button("Mark all read"):
    inbox.mark_all_read()
    st.rerun()

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🧾 Transactions", "💰 Budgets", "🏆 Achievements", "🤖 Assistant"]
)

if st.sidebar.button("🌱 Load demo data"):
    run(lambda tracker: tracker.seed_demo_data())
    st.rerun()

if menu == "🏠 Dashboard":
    stats = data["stats"]
    user = data["result"].stats
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Income", money(stats.income))
    with k2:
        st.metric("Expenses", money(stats.expenses))
    with k3:
        st.metric("Savings", money(stats.savings))
    with k4:
        st.metric("Health score", f"{user.financial_health_score}/100")

    totals = monthly_totals_to_frame(data["totals"])
    fig_ts = go.Figure()
    fig_ts.add_trace(go.Bar(x=totals["month"], y=totals["income"], name="Income"))
    fig_ts.add_trace(go.Bar(x=totals["month"], y=totals["expense"], name="Expense"))
    fig_ts.add_trace(go.Scatter(x=totals["month"], y=totals["savings"], mode="lines+markers", name="Savings"))
    fig_ts.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig_ts, use_container_width=True)

    sums = category_sums_to_frame(data["sums"])
    if not sums.empty:
        fig_cat = px.pie(sums, values="value", names="name", title="Expenses by category")
        fig_cat.update_layout(height=320)
        st.plotly_chart(fig_cat, use_container_width=True)
    else:
        st.info("No expenses this month.")

elif menu == "🧾 Transactions":
    st.title("🧾 Transactions")
    with st.form("input_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            tx_type = st.selectbox("Type", [EXPENSE, INCOME])
            amount = st.number_input("Amount", min_value=0.0, step=100.0, format="%.2f")
        with col2:
            category = st.selectbox("Category", CATEGORIES)
            date = st.date_input("Date")
        note = st.text_input("Note (optional)", max_chars=120)
        submitted = st.form_submit_button("Add Transaction")

    if submitted:
        payload = {"type": tx_type, "amount": amount, "category": category, "date": date, "note": note}
        try:
            run(lambda tracker: tracker.add_transaction(payload))
            st.success("Transaction added")
            st.rerun()
        except LedgerError as e:
            st.error(str(e))

    query = st.text_input("🔍 Search", placeholder="note, category, amount or date")
    f1, f2, f3, f4 = st.columns(4)
    criteria = TransactionFilter(
        types=tuple(f1.multiselect("Type", [INCOME, EXPENSE], key="filter_types")),
        categories=tuple(f2.multiselect("Categories", CATEGORIES, key="filter_categories")),
        date_from=f3.date_input("From", value=None),
        date_to=f4.date_input("To", value=None),
    )
    if query or criteria.active_count():
        found = run(lambda tracker: tracker.search_transactions(query, criteria))
        st.caption(f"{len(found)} result(s), {criteria.active_count()} active filter(s)")
    else:
        found = data["transactions"]

    df = transactions_to_frame(found)
    if not df.empty:
        disp = df.drop(columns=["id"]).assign(
            date=lambda x: x["date"].dt.strftime("%Y-%m-%d"),
            amount=lambda x: x["amount"].map(money),
        )
        st.dataframe(disp, use_container_width=True)
        st.download_button("⬇ Download CSV", df.to_csv(index=False), file_name="transactions.csv")
    else:
        st.info("No transactions yet.")

elif menu == "💰 Budgets":
    st.title("💰 Budgets")
    with st.form("budget_form", clear_on_submit=True):
        category = st.selectbox("Category", CATEGORIES)
        limit = st.number_input("Monthly limit", min_value=1.0, step=500.0)
        if st.form_submit_button("Create budget"):
            try:
                run(lambda tracker: tracker.budgets.create_budget(category, limit))
                st.rerun()
            except DuplicateBudgetError as e:
                st.warning(str(e))

    budgets = data["result"].budgets
    for _, row in budgets_to_frame(budgets).iterrows():
        st.metric(
            f"Budget: {row['Category']}",
            f"{money(row['Spent'])} / {money(row['Limit'])}",
            f"{money(row['Remaining'])} remaining ({row['Status']})"
        )
        st.progress(row["Progress"] / 100)
    for b in budgets:
        if st.button(f"Delete {b.category}", key=f"del_{b.id}"):
            run(lambda tracker: tracker.budgets.delete_budget(b.id))
            st.rerun()

elif menu == "🏆 Achievements":
    user = data["result"].stats
    st.title("🏆 Achievements")
    c1, c2, c3 = st.columns(3)
    c1.metric("Level", user.level, f"{user.total_points}/{user.next_level_points} pts")
    c2.metric("Streak", f"{user.current_streak} days", f"best {user.longest_streak}")
    c3.metric("Monthly goal", f"{user.monthly_goal_progress:.0f}%")
    for a in data["achievements"]:
        st.markdown(f"**{a.icon} {a.title}**: {a.description} ({a.points} pts)")
        st.progress(min(1.0, a.progress / a.requirement) if a.requirement else 0.0)

elif menu == "🤖 Assistant":
    st.title("🤖 Assistant")
    cols = st.columns(5)
    prompt = None
    for col, suggestion in zip(cols, quick_actions()):
        if col.button(suggestion):
            prompt = suggestion
    prompt = st.chat_input("Ask about your finances") or prompt
    if prompt:
        answer = run(lambda tracker: tracker.ask(prompt))
        st.session_state.chat += [("user", prompt), ("assistant", answer)]
    for role, text in st.session_state.chat:
        with st.chat_message(role):
            st.write(text)
