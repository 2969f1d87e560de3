import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from teambudget import config
from teambudget.controller import BudgetController
from teambudget.domain import BUDGET_PER_PERSON
from teambudget.events import SAVE_FAILED
from teambudget.formatting import (
    LEVEL_OVER,
    LEVEL_WARNING,
    balance_label,
    bar_fraction,
    expenses_frame,
    format_currency,
    format_percent,
    usage_level,
)
from teambudget.repository import BudgetRepository
from teambudget.storage import JsonFileStorage

st.set_page_config(page_title="팀 조직경비 관리", layout="centered")

logger = config.configure_logging()

if "tb_loop" not in st.session_state:
    st.session_state.tb_loop = asyncio.new_event_loop()

if "tb_controller" not in st.session_state:
    config.ensure_data_directories()
    repository = BudgetRepository(JsonFileStorage(config.STORAGE_FILE), shared=True)
    controller = BudgetController(repository, config.default_month())
    controller.bus.subscribe(SAVE_FAILED, lambda event, payload: logger.warning("Save failed: %s", payload) or {})
    st.session_state.tb_controller = controller
    st.session_state.tb_loaded = False

controller: BudgetController = st.session_state.tb_controller


def run(action):
    """Run a controller call on the page's loop and wait for its saves."""
    async def _go():
        result = action()
        if asyncio.iscoroutine(result):
            result = await result
        await controller.flush()
        return result
    return st.session_state.tb_loop.run_until_complete(_go())


def month_options(current: str) -> list[str]:
    today = pd.Timestamp.today()
    months = pd.period_range(end=today.to_period("M") + 3, periods=18, freq="M")
    options = [str(m) for m in months]
    if current not in options:
        options.append(current)
    return sorted(options, reverse=True)


if not st.session_state.tb_loaded:
    with st.spinner("불러오는 중..."):
        run(controller.load)
    st.session_state.tb_loaded = True

# ── Header ────────────────────────────────────────────────────────────────
col_title, col_month = st.columns([3, 1])
with col_title:
    st.title("팀 조직경비 관리")
with col_month:
    options = month_options(controller.month)
    selected_month = st.selectbox("📅 월", options, index=options.index(controller.month))

if selected_month != controller.month:
    with st.spinner("불러오는 중..."):
        run(lambda: controller.set_month(selected_month))
    st.rerun()

if controller.loading:
    st.info("불러오는 중...")
    st.stop()

record = controller.record
summary = controller.summary

# ── Team size ─────────────────────────────────────────────────────────────
col_team, col_budget = st.columns([1, 2])
with col_team:
    team_size = st.number_input(
        "👥 팀원 수",
        min_value=1,
        step=1,
        value=record.team_size,
        key=f"team_size_{controller.month}",
    )
with col_budget:
    st.caption(f"× {BUDGET_PER_PERSON // 10000}만원 = {format_currency(summary.total_budget)}")

if int(team_size) != record.team_size:
    run(lambda: controller.set_team_size(team_size))
    st.rerun()

# ── Summary ───────────────────────────────────────────────────────────────
label, amount = balance_label(summary)
if summary.over_budget:
    st.error(f"⚠️ {label}: **{format_currency(amount)}** 초과")
else:
    st.success(f"✓ {label}: **{format_currency(amount)}**")

k1, k2 = st.columns(2)
with k1:
    st.metric("💰 총 예산", format_currency(summary.total_budget))
with k2:
    st.metric("📉 사용액", format_currency(summary.total_spent))

st.progress(bar_fraction(summary.usage_percent))
level = usage_level(summary.usage_percent)
usage_text = f"{format_percent(summary.usage_percent)} 사용"
if level == LEVEL_OVER:
    st.caption(f"🔴 {usage_text}")
elif level == LEVEL_WARNING:
    st.caption(f"🟠 {usage_text}")
else:
    st.caption(usage_text)

gauge_color = {LEVEL_OVER: "#ef4444", LEVEL_WARNING: "#fb923c"}.get(level, "#3b82f6")
fig = go.Figure(go.Indicator(
    mode="gauge+number",
    value=summary.total_spent,
    number={"suffix": "원", "valueformat": ","},
    gauge={
        "axis": {"range": [0, max(summary.total_budget, summary.total_spent)]},
        "bar": {"color": gauge_color},
        "threshold": {"line": {"color": "#16a34a", "width": 3}, "value": summary.total_budget},
    },
))
fig.update_layout(height=220, margin=dict(t=20, b=10, l=20, r=20))
st.plotly_chart(fig, use_container_width=True)

st.divider()

# ── Expense form ──────────────────────────────────────────────────────────
st.subheader("➕ 지출 입력")
# inputs keep what was typed until an add succeeds and the draft resets
if st.session_state.pop("tb_reset_form", False):
    st.session_state.draft_name = controller.draft.name
    st.session_state.draft_amount = controller.draft.amount
    st.session_state.draft_description = controller.draft.description

with st.form("expense_form"):
    col1, col2 = st.columns([2, 1])
    with col1:
        name = st.text_input("사용자", key="draft_name")
    with col2:
        amount_raw = st.text_input("금액", key="draft_amount")
    description = st.text_input("사용 내역 (선택)", key="draft_description")
    submitted = st.form_submit_button("추가")

    if submitted:
        controller.update_draft(name=name, amount=amount_raw, description=description)
        before = len(controller.record.expenses)
        run(controller.add_expense)
        if len(controller.record.expenses) > before:
            st.session_state.tb_reset_form = True
            st.rerun()

st.divider()

# ── Expense list ──────────────────────────────────────────────────────────
st.subheader(f"🧾 지출 내역 ({summary.expense_count}건)")
if not record.expenses:
    st.info("아직 지출 내역이 없습니다")
else:
    for e in record.expenses:
        c_info, c_amount, c_delete = st.columns([4, 2, 1])
        with c_info:
            st.markdown(f"**{e.name}** · {e.date}")
            if e.description:
                st.caption(e.description)
        with c_amount:
            st.write(format_currency(e.amount))
        with c_delete:
            if st.button("🗑", key=f"del_{e.id}"):
                run(lambda expense_id=e.id: controller.delete_expense(expense_id))
                st.rerun()

    df = expenses_frame(record)
    csv = df.to_csv(index=False)
    st.download_button("⬇ Download CSV", csv, file_name=f"budget-{controller.month}.csv")

st.caption("💡 이 페이지를 공유하면 팀원 모두가 동일한 데이터를 확인할 수 있습니다")
