"""
Streamlit Frontend for BudgetForge

This is the interface a user opens to record money coming in and going
out, keep track of informal loans, and see where their money goes.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Nothing is saved without an explicit "Save" action
3. Clear error messages in simple language
4. Visual feedback for all operations

The signed-in user is resolved once (APP_USER_ID) and passed explicitly
to every flow call; pages never read identity from anywhere else.
"""

import asyncio
import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

import streamlit as st

from budgetforge.aggregation import format_currency
from budgetforge.audit import create_correlation_id
from budgetforge.config import get_settings, validate_all_settings
from budgetforge.models.ledger import (
    CategoryDraft,
    EntryDraft,
    EntryKind,
    LoanDraft,
    LoanKind,
)
from budgetforge.orchestrator import AppComponents, create_app_components
from budgetforge.services.storage import StorageError
from budgetforge.validation import RecordValidator


# Page configuration
st.set_page_config(
    page_title="BudgetForge",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for the summary cards
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .card {
        padding: 20px;
        border-radius: 10px;
        margin: 10px 0;
        background-color: #f8fafc;
    }
    .income-card { border-left: 5px solid #22c55e; }
    .expense-card { border-left: 5px solid #ef4444; }
    .balance-card { border-left: 5px solid #2563eb; }
    .big-number {
        font-size: 2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    app_settings = get_settings().app
    logging.basicConfig(
        level=logging.DEBUG if app_settings.debug_mode else logging.INFO,
        format="%(message)s",
    )
    return create_app_components(use_storage=True)


def money(amount: Decimal) -> str:
    return format_currency(amount, get_settings().app.currency_code)


def show_validation(result) -> None:
    """Show validation errors and warnings in plain language."""
    summary = RecordValidator().get_user_friendly_summary(result)
    if result.is_valid:
        st.success("Saved.")
        if result.warnings:
            st.warning(summary)
    else:
        st.error(summary)


def editing_record(state_key: str, fetch):
    """The record open for editing, or None when the form adds a new one."""
    record_id = st.session_state.get(state_key)
    if record_id is None:
        return None
    record = run_async(fetch(record_id))
    if record is None:
        st.session_state.pop(state_key, None)
    return record


def edit_buttons(state_key: str, record_id: UUID, delete) -> None:
    """Edit and delete buttons for one listed record."""
    col1, col2 = st.columns(2)
    with col1:
        if st.button("✏️", key=f"{state_key}_{record_id}"):
            st.session_state[state_key] = record_id
            st.rerun()
    with col2:
        if st.button("🗑️", key=f"delete_{state_key}_{record_id}"):
            run_async(delete(record_id))
            if st.session_state.get(state_key) == record_id:
                st.session_state.pop(state_key, None)
            st.rerun()


def main():
    """Main application entry point."""
    components = get_components()

    user_id = get_settings().app.user_id
    if user_id is None:
        st.error(
            "No user configured. Set APP_USER_ID in your `.env` file "
            "to the ID of the ledger you want to open."
        )
        st.stop()

    # New users get their own copy of the default categories
    run_async(components.categories.seed_default_categories(user_id))

    # Sidebar navigation
    st.sidebar.title("💰 BudgetForge")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "🧾 Transactions",
            "🏷️ Categories",
            "🤝 Hutang / Piutang",
            "📈 Analysis",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if components.backend == "memory":
        st.sidebar.warning(
            "Google Sheets is not configured. "
            "Data is kept in memory and lost on restart."
        )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components, user_id)
    elif page == "🧾 Transactions":
        render_transactions_page(components, user_id)
    elif page == "🏷️ Categories":
        render_categories_page(components, user_id)
    elif page == "🤝 Hutang / Piutang":
        render_loans_page(components, user_id)
    elif page == "📈 Analysis":
        render_analysis_page(components, user_id)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def render_card(title: str, amount: Decimal, css_class: str) -> None:
    st.markdown(f"""
    <div class="card {css_class}">
        <h4>{title}</h4>
        <div class="big-number">{money(amount)}</div>
    </div>
    """, unsafe_allow_html=True)


def render_trend_chart(trend) -> None:
    if not trend:
        st.info("No transactions yet.")
        return
    st.bar_chart(
        {
            "Month": [point.period_label for point in trend],
            "Income": [float(point.income) for point in trend],
            "Expense": [float(point.expense) for point in trend],
        },
        x="Month",
        y=["Income", "Expense"],
        color=["#22c55e", "#ef4444"],
    )


def render_distribution(ranked) -> None:
    if not ranked:
        st.info("No expenses in this period.")
        return
    for item in ranked:
        col1, col2 = st.columns([3, 1])
        with col1:
            st.markdown(
                f"<span style='color:{item.color}'>●</span> "
                f"**{item.category_name}** · {money(item.total)}",
                unsafe_allow_html=True,
            )
            st.progress(item.percentage / 100)
        with col2:
            st.markdown(f"**{item.percentage}%**")


def render_dashboard_page(components: AppComponents, user_id: UUID):
    """Render the dashboard: cards, trend, top categories and recent entries."""
    st.title("📊 Dashboard")

    try:
        summary = run_async(components.dashboard.build_dashboard(user_id))
    except StorageError as e:
        st.error(f"Could not load your ledger: {e}")
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        render_card("Total Income", summary.totals.total_income, "income-card")
    with col2:
        render_card("Total Expense", summary.totals.total_expense, "expense-card")
    with col3:
        render_card("Balance", summary.totals.balance, "balance-card")

    if summary.skipped_records:
        st.warning(
            f"{summary.skipped_records} record(s) could not be read and were left out."
        )

    st.markdown("### Monthly Trend")
    render_trend_chart(summary.monthly_trend)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### Top Expense Categories")
        render_distribution(summary.top_categories)

    with col2:
        st.markdown("### Recent Transactions")
        if not summary.recent_entries:
            st.info("Nothing recorded yet.")
        for entry in summary.recent_entries:
            sign = "+" if entry.kind == EntryKind.INCOME else "-"
            st.markdown(
                f"{entry.occurred_on.strftime('%d %b %Y')} · "
                f"{entry.note or entry.kind.value.title()} · "
                f"**{sign}{money(entry.amount)}**"
            )

    st.markdown("### Hutang / Piutang")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("You owe (hutang)", money(summary.loans.total_owed))
    with col2:
        st.metric("Owed to you (piutang)", money(summary.loans.total_receivable))
    with col3:
        st.metric("Net position", money(summary.loans.net_position))


def render_transactions_page(components: AppComponents, user_id: UUID):
    """Render the entry form and the list of transactions."""
    st.title("🧾 Transactions")

    categories = run_async(components.categories.list_categories(user_id))
    names = {c.id: c.name for c in categories}
    category_options = [None] + [c.id for c in categories]
    editing = editing_record(
        "editing_entry_id", lambda entry_id: components.store.get_entry(user_id, entry_id)
    )

    with st.form(f"entry_form_{editing.id if editing else 'new'}", clear_on_submit=True):
        st.markdown("### Edit transaction" if editing else "### Add a transaction")
        col1, col2 = st.columns(2)
        with col1:
            kind = st.radio(
                "Type",
                options=list(EntryKind),
                index=list(EntryKind).index(editing.kind) if editing else 0,
                format_func=lambda k: k.value.title(),
                horizontal=True,
            )
            amount = st.number_input(
                "Amount",
                min_value=0.0,
                value=float(editing.amount) if editing else 0.0,
                step=1000.0,
                format="%.2f",
            )
        with col2:
            category_id = st.selectbox(
                "Category",
                options=category_options,
                index=(
                    category_options.index(editing.category_id)
                    if editing and editing.category_id in names else 0
                ),
                format_func=lambda cid: "No category" if cid is None else names[cid],
            )
            occurred_on = st.date_input(
                "Date", value=editing.occurred_on if editing else date.today()
            )
        note = st.text_input(
            "Description", value=(editing.note or "") if editing else "", max_chars=500
        )

        submitted = st.form_submit_button("💾 Save", type="primary")
        if editing is not None and st.form_submit_button("Cancel"):
            st.session_state.pop("editing_entry_id", None)
            st.rerun()

        if submitted:
            draft = EntryDraft(
                kind=kind,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                category_id=category_id,
                note=note,
                occurred_on=occurred_on,
            )
            try:
                saved, result = run_async(
                    components.entries.save_entry(
                        user_id,
                        draft,
                        entry_id=editing.id if editing else None,
                        correlation_id=create_correlation_id(),
                    )
                )
                show_validation(result)
                if saved is not None:
                    st.session_state.pop("editing_entry_id", None)
            except StorageError as e:
                st.error(f"Could not save: {e}")

    st.markdown("---")
    kind_filter = st.selectbox(
        "Show",
        options=[None] + list(EntryKind),
        format_func=lambda k: "All" if k is None else k.value.title(),
    )
    entries = run_async(components.entries.list_entries(user_id, kind=kind_filter))

    if not entries:
        st.info("No transactions yet. Add your first one above.")
        return

    for entry in entries:
        col1, col2 = st.columns([5, 1])
        with col1:
            category = names.get(entry.category_id, get_settings().app.uncategorized_label)
            sign = "+" if entry.kind == EntryKind.INCOME else "-"
            st.markdown(
                f"{entry.occurred_on.strftime('%d %b %Y')} · {category} · "
                f"{entry.note or ''} **{sign}{money(entry.amount)}**"
            )
        with col2:
            edit_buttons(
                "editing_entry_id",
                entry.id,
                lambda entry_id: components.entries.delete_entry(user_id, entry_id),
            )


def render_categories_page(components: AppComponents, user_id: UUID):
    """Render category management."""
    st.title("🏷️ Categories")

    editing = editing_record(
        "editing_category_id",
        lambda category_id: components.store.get_category(user_id, category_id),
    )

    with st.form(f"category_form_{editing.id if editing else 'new'}", clear_on_submit=True):
        if editing:
            st.markdown(f"### Edit {editing.name}")
        col1, col2, col3 = st.columns(3)
        with col1:
            name = st.text_input("Name", value=editing.name if editing else "", max_chars=100)
        with col2:
            kind = st.selectbox(
                "Type",
                options=list(EntryKind),
                index=list(EntryKind).index(editing.kind) if editing else 0,
                format_func=lambda k: k.value.title(),
            )
        with col3:
            icon = st.text_input(
                "Icon", value=(editing.icon or "") if editing else "", max_chars=50
            )

        submitted = st.form_submit_button("💾 Save", type="primary")
        if editing is not None and st.form_submit_button("Cancel"):
            st.session_state.pop("editing_category_id", None)
            st.rerun()

        if submitted:
            draft = CategoryDraft(name=name, kind=kind, icon=icon or None)
            try:
                saved, result = run_async(
                    components.categories.save_category(
                        user_id, draft, category_id=editing.id if editing else None
                    )
                )
                show_validation(result)
                if saved is not None:
                    st.session_state.pop("editing_category_id", None)
            except StorageError as e:
                st.error(f"Could not save: {e}")

    st.markdown("---")
    categories = run_async(components.categories.list_categories(user_id))
    for kind in EntryKind:
        st.markdown(f"### {kind.value.title()}")
        for category in [c for c in categories if c.kind == kind]:
            col1, col2 = st.columns([5, 1])
            with col1:
                st.markdown(f"**{category.name}** {category.icon or ''}")
            with col2:
                edit_buttons(
                    "editing_category_id",
                    category.id,
                    lambda category_id: components.categories.delete_category(
                        user_id, category_id
                    ),
                )

    st.caption("Deleting a category keeps its transactions; they become uncategorized.")


def render_loans_page(components: AppComponents, user_id: UUID):
    """Render the hutang/piutang ledger."""
    st.title("🤝 Hutang / Piutang")

    editing = editing_record(
        "editing_loan_id", lambda loan_id: components.store.get_loan(user_id, loan_id)
    )

    with st.form(f"loan_form_{editing.id if editing else 'new'}", clear_on_submit=True):
        if editing:
            st.markdown("### Edit record")
        col1, col2 = st.columns(2)
        with col1:
            kind = st.radio(
                "Type",
                options=list(LoanKind),
                index=list(LoanKind).index(editing.kind) if editing else 0,
                format_func=lambda k: "Hutang (I owe)" if k == LoanKind.HUTANG else "Piutang (owed to me)",
                horizontal=True,
            )
            amount = st.number_input(
                "Amount",
                min_value=0.0,
                value=float(editing.amount) if editing else 0.0,
                step=1000.0,
                format="%.2f",
            )
        with col2:
            occurred_on = st.date_input(
                "Date", value=editing.occurred_on if editing else date.today()
            )
            note = st.text_input(
                "Description", value=(editing.note or "") if editing else "", max_chars=500
            )

        submitted = st.form_submit_button("💾 Save", type="primary")
        if editing is not None and st.form_submit_button("Cancel"):
            st.session_state.pop("editing_loan_id", None)
            st.rerun()

        if submitted:
            draft = LoanDraft(
                kind=kind,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                note=note,
                occurred_on=occurred_on,
            )
            try:
                saved, result = run_async(
                    components.loans.save_loan(
                        user_id, draft, loan_id=editing.id if editing else None
                    )
                )
                show_validation(result)
                if saved is not None:
                    st.session_state.pop("editing_loan_id", None)
            except StorageError as e:
                st.error(f"Could not save: {e}")

    st.markdown("---")
    loans = run_async(components.loans.list_loans(user_id))
    if not loans:
        st.info("No hutang or piutang recorded.")
        return

    for loan in loans:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.markdown(
                f"{loan.occurred_on.strftime('%d %b %Y')} · **{loan.kind.value.title()}** · "
                f"{loan.note or ''} {money(loan.amount)}"
            )
        with col2:
            edit_buttons(
                "editing_loan_id",
                loan.id,
                lambda loan_id: components.loans.delete_loan(user_id, loan_id),
            )


def render_analysis_page(components: AppComponents, user_id: UUID):
    """Render the trend and full category distribution."""
    st.title("📈 Analysis")

    col1, col2 = st.columns(2)
    with col1:
        kind = st.selectbox(
            "Distribution of",
            options=list(EntryKind),
            index=1,
            format_func=lambda k: k.value.title(),
        )
    with col2:
        date_range = st.date_input("Date Range", value=[])

    date_from = date_to = None
    if len(date_range) == 2:
        date_from, date_to = date_range

    summary = run_async(
        components.dashboard.build_analysis(
            user_id, kind=kind, date_from=date_from, date_to=date_to
        )
    )

    st.markdown("### Monthly Trend")
    render_trend_chart(summary.monthly_trend)

    st.markdown(f"### {kind.value.title()} by Category")
    render_distribution(summary.categories)


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application Settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(f"**Active backend:** {components.backend}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
