"""
Streamlit Frontend for Arus

A small dashboard over FinanceService:
1. Plan how income is split
2. Record income and expenses
3. Replay a bank statement
4. See the monthly summary and status

DESIGN PRINCIPLES:
1. Every action goes through the service, never straight to the models
2. Rejections are shown with the ledger's own message
3. Balances are always visible in the sidebar
"""

import asyncio
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation

import streamlit as st

from arus.errors import LedgerError
from arus.models.ledger import (
    AccountStatement,
    AllocationKind,
    AllocationRule,
    CategoryKind,
    IncomeStatus,
    Period,
    Transaction,
)
from arus.models.money import Money
from arus.services.finance import FinanceService, create_finance_service
from arus.services.storage import DuplicateError, NotFoundError


DEMO_USER = "user123"


st.set_page_config(
    page_title="Arus Ledger",
    page_icon="💧",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_service() -> FinanceService:
    """Create the service once per Streamlit process."""
    service = create_finance_service()
    try:
        run_async(service.create_user(DEMO_USER))
    except DuplicateError:
        pass
    return service


def to_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def main():
    """Main application entry point."""
    service = get_service()

    try:
        user = run_async(service.get_user(DEMO_USER))
    except NotFoundError:
        st.error("Demo user is missing. Restart the app.")
        st.stop()

    render_sidebar(user)

    page = st.sidebar.radio(
        "Navigate to:",
        ["📐 Allocation Plan", "💵 Income", "🧾 Expense", "🏦 Statement", "📊 Summary"],
        index=0,
    )

    if page == "📐 Allocation Plan":
        render_plan_page(service, user)
    elif page == "💵 Income":
        render_income_page(service, user)
    elif page == "🧾 Expense":
        render_expense_page(service, user)
    elif page == "🏦 Statement":
        render_statement_page(service, user)
    elif page == "📊 Summary":
        render_summary_page(service)


def render_sidebar(user):
    st.sidebar.title("💧 Arus Ledger")
    st.sidebar.markdown("---")
    for kind, balance in user.balances().items():
        st.sidebar.metric(kind.label, f"{balance.quantize().amount:,} {balance.currency}")
    st.sidebar.markdown("---")


def render_plan_page(service: FinanceService, user):
    st.title("📐 Allocation Plan")
    st.markdown("Fixed amounts are taken first. Percentages split what is left.")

    rules = []
    for kind in CategoryKind:
        col1, col2 = st.columns(2)
        with col1:
            rule_kind = st.selectbox(
                f"{kind.label} rule",
                options=["none", AllocationKind.PERCENTAGE.value, AllocationKind.FIXED_AMOUNT.value],
                key=f"kind_{kind.value}",
            )
        with col2:
            value = st.text_input(
                "Value (fraction 0-1, or amount)",
                value="0",
                key=f"value_{kind.value}",
            )
        try:
            if rule_kind == AllocationKind.PERCENTAGE.value:
                rules.append(AllocationRule.percent(kind, value))
            elif rule_kind == AllocationKind.FIXED_AMOUNT.value:
                rules.append(AllocationRule.fixed(kind, Money.of(value, user.currency)))
        except (ValueError, InvalidOperation) as e:
            st.error(f"Invalid {kind.label} rule: {e}")
            st.stop()

    if st.button("💾 Save Plan", type="primary"):
        try:
            result = run_async(service.set_allocation_rules(DEMO_USER, rules))
            st.success(service.summarize_validation(result))
        except LedgerError as e:
            st.error(str(e))

    if user.allocation_rules:
        st.markdown("### Current plan")
        for rule in user.allocation_rules:
            if rule.kind == AllocationKind.PERCENTAGE:
                st.write(f"- {rule.category.label}: {rule.percentage * 100}% of remaining income")
            else:
                st.write(f"- {rule.category.label}: {rule.amount}")


def render_income_page(service: FinanceService, user):
    st.title("💵 Record Income")

    amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
    received = st.date_input("Date", value=date.today())
    description = st.text_input("Description", placeholder="e.g. September salary")

    if st.button("➕ Allocate Income", type="primary"):
        try:
            run_async(service.allocate_income(
                DEMO_USER,
                Money.of(Decimal(str(amount)), user.currency),
                date=to_utc(received),
                description=description,
            ))
            st.success("Income allocated.")
            st.rerun()
        except LedgerError as e:
            st.error(str(e))


def render_expense_page(service: FinanceService, user):
    st.title("🧾 Record Expense")
    st.markdown("Paid from Expense first, then Emergency, then Savings.")

    amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
    spent = st.date_input("Date", value=date.today())
    description = st.text_input("Description", placeholder="e.g. Car repair")

    if st.button("➖ Process Expense", type="primary"):
        try:
            plan = run_async(service.process_expense(
                DEMO_USER,
                Transaction(
                    amount=Money.of(Decimal(str(amount)), user.currency),
                    date=to_utc(spent),
                    description=description,
                ),
            ))
            for deduction in plan.deductions:
                st.write(f"- {deduction.category.label}: {deduction.amount}")
            st.success("Expense processed.")
        except LedgerError as e:
            st.error(str(e))


def render_statement_page(service: FinanceService, user):
    st.title("🏦 Replay Statement")

    accounts = {
        f"{c.bank_account.bank_name} ({c.bank_account.account_number})": c.bank_account
        for c in user.categories.values()
    }
    account_label = st.selectbox("Bank account", options=list(accounts))
    raw = st.text_area(
        "Expenses, one per line as YYYY-MM-DD,amount,description",
        placeholder="2023-09-15,120.50,Groceries",
    )

    if st.button("▶️ Replay", type="primary"):
        expenses = []
        try:
            for line in raw.strip().splitlines():
                day, amount, description = [part.strip() for part in line.split(",", 2)]
                expenses.append(Transaction(
                    amount=Money.of(amount, user.currency),
                    date=to_utc(date.fromisoformat(day)),
                    description=description,
                ))
        except (ValueError, InvalidOperation) as e:
            st.error(f"Could not read the statement: {e}")
            st.stop()

        try:
            plans = run_async(service.process_account_statement(
                DEMO_USER,
                AccountStatement(bank_account=accounts[account_label], expenses=expenses),
            ))
            st.success(f"{len(plans)} expenses processed.")
        except LedgerError as e:
            st.error(str(e))


def render_summary_page(service: FinanceService):
    st.title("📊 Monthly Summary")

    today = date.today()
    col1, col2 = st.columns(2)
    with col1:
        year = st.number_input("Year", min_value=1970, max_value=2100, value=today.year)
    with col2:
        month = st.number_input("Month", min_value=1, max_value=12, value=today.month)

    period = Period.for_month(int(year), int(month))
    summary = run_async(service.get_period_summary(DEMO_USER, period))
    report = run_async(service.check_income_status(DEMO_USER, period))

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", str(summary.total_income))
    col2.metric("Expenses", str(summary.total_expense))
    col3.metric("Net", str(summary.net))

    if report.status == IncomeStatus.INCOME_COVERS_EXPENSES:
        st.success(report.message)
    else:
        st.warning(report.message)

    st.markdown("### Income")
    for t in summary.incomes:
        st.write(f"- {t.description or '(no description)'}: {t.amount} on {t.date:%Y-%m-%d}")
    st.markdown("### Expenses")
    for t in summary.expenses:
        st.write(f"- {t.description or '(no description)'}: {t.amount} on {t.date:%Y-%m-%d}")

    with st.expander("📜 Recent activity"):
        for event in run_async(service.get_audit_history(DEMO_USER, limit=20)):
            st.write(f"- {event.timestamp:%Y-%m-%d %H:%M} {event.description}")


if __name__ == "__main__":
    main()
