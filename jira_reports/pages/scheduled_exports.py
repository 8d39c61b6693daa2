"""Scheduled Exports page: configure the recurring export for one recipient."""

from __future__ import annotations

from datetime import time

import streamlit as st

from jira_reports.app import register_page
from jira_reports.core.config import EXPORT_FIELDS
from jira_reports.core.errors import ReportError
from jira_reports.resolvers import ReportResolvers

WEEK_DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DESTINATIONS = {
    "Create a new issue": "create-issue",
    "Comment on an existing issue": "comment-on-issue",
    "Email": "email",
}


@register_page("Scheduled Exports")
def scheduled_exports_page():
    st.title("Scheduled Exports")
    st.caption("Reports run hourly (UTC) and are filed in Jira with the spreadsheet attached.")
    resolvers: ReportResolvers | None = st.session_state.get("resolvers")
    if resolvers is None:
        st.warning("Initialize connection on Setup page first.")
        return

    filters = st.session_state.get("filters_payload") or {}
    if not filters:
        st.info("No filters selected on the Issue Report page; the schedule will include all issues.")

    default_email = st.session_state.get("jira_email") or resolvers.invoke("getCurrentUserEmail") or ""
    email = st.text_input("Recipient email", value=default_email)
    existing = resolvers.schedules.find_by_email(email) if email else None
    if existing:
        last = existing.last_run.isoformat() if existing.last_run else "never"
        st.caption(f"Existing schedule will be replaced (last run: {last}).")

    frequency = st.selectbox("Frequency", ["daily", "weekly", "monthly"])
    week_day = month_date = None
    if frequency == "weekly":
        week_day = WEEK_DAYS.index(st.selectbox("Day of week", WEEK_DAYS, index=1))
    elif frequency == "monthly":
        month_date = st.number_input("Day of month", min_value=1, max_value=31, value=1)
    at = st.time_input("Time (UTC)", value=time(9, 0), step=3600)

    destination = DESTINATIONS[st.selectbox("Destination", list(DESTINATIONS))]
    target = st.text_input("Target issue key") if destination == "comment-on-issue" else None
    message = st.text_area("Message", value="")
    fields = st.multiselect("Columns", list(EXPORT_FIELDS), default=list(EXPORT_FIELDS))
    comment_mode = st.radio("Comments", ["none", "last", "full"], index=1, horizontal=True)

    payload = {
        "email": email,
        "active": True,
        "frequency": frequency,
        "time": at.strftime("%H:%M"),
        "weekDay": week_day,
        "monthDate": month_date,
        "destination": destination,
        "targetIssueKey": target,
        "message": message,
        "filters": filters,
        "selectedFields": fields,
        "commentMode": comment_mode,
    }

    c1, c2 = st.columns(2)
    if c1.button("Schedule", type="primary"):
        try:
            resolvers.invoke("saveSchedule", payload)
            st.success("Schedule saved.")
        except ReportError as exc:
            st.error(str(exc))
    if c2.button("Save & Send Test Report"):
        try:
            resolvers.invoke("saveSchedule", payload)
            with st.spinner("Delivering report..."):
                resp = resolvers.invoke("triggerScheduleNow", {"email": email})
        except ReportError as exc:
            st.error(str(exc))
            return
        if resp["success"]:
            st.success(resp["message"])
        else:
            st.warning(resp["message"])
