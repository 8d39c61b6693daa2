"""Issue Report page: filter issues, review the table, comment, export, save views."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

import streamlit as st

from jira_reports.app import register_page
from jira_reports.core.config import (
    COMMENT_MODES,
    CSV_MIME_TYPE,
    EXPORT_FIELDS,
    PDF_MIME_TYPE,
    SETTINGS_FILENAME,
    XLSX_MIME_TYPE,
    load_settings,
)
from jira_reports.core.errors import ReportError
from jira_reports.core.mappers import rows_to_dataframe
from jira_reports.core.models import FilterSet
from jira_reports.resolvers import ReportResolvers
from jira_reports.visual.export import (
    export_summary,
    prepare_export_rows,
    to_csv_bytes,
    to_excel_bytes,
    to_pdf_bytes,
)

logger = logging.getLogger(__name__)

PAGE_KEY = "issue_report"


def pick_options(options: Sequence[dict[str, Any]], chosen_labels: Sequence[str]) -> list[dict[str, Any]]:
    """Keep the option dicts whose label was selected, in selection order."""
    by_label = {str(o.get("label")): o for o in options}
    return [by_label[label] for label in chosen_labels if label in by_label]


def build_filter_payload(
    selections: dict[str, list[dict[str, Any]]],
    sprint_text: str = "",
    date_range: Sequence[date] | None = None,
    exceeded_only: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {name: list(values) for name, values in selections.items() if values}
    sprints = [s.strip() for s in sprint_text.split(",") if s.strip()]
    if sprints:
        payload["sprint"] = sprints
    if date_range and len(date_range) == 2:
        payload["startDate"] = date_range[0].strftime("%Y-%m-%d")
        payload["endDate"] = date_range[1].strftime("%Y-%m-%d")
    payload["exceededOnly"] = bool(exceeded_only)
    return payload


def build_comment_payload(
    issue_keys: Sequence[str],
    comment: str,
    users: Sequence[dict[str, Any]],
    mention_labels: Sequence[str],
) -> dict[str, Any]:
    return {
        "issueKeys": list(issue_keys),
        "comment": comment,
        "mentions": pick_options(users, mention_labels),
    }


def _load_options(resolvers: ReportResolvers) -> dict[str, list[dict[str, Any]]]:
    cached = st.session_state.get(f"{PAGE_KEY}_options")
    if cached is not None:
        return cached
    options = {}
    for name, op in (
        ("project", "getProjects"),
        ("status", "getStatuses"),
        ("issueType", "getIssueTypes"),
        ("priority", "getPriorities"),
        ("labels", "getLabels"),
        ("assignee", "getUsers"),
    ):
        try:
            options[name] = resolvers.invoke(op)
        except Exception as exc:  # pragma: no cover - network error path
            logger.warning("Could not load %s options: %s", name, exc)
            options[name] = []
    st.session_state[f"{PAGE_KEY}_options"] = options
    return options


def _filter_form(resolvers: ReportResolvers) -> dict[str, Any] | None:
    options = _load_options(resolvers)
    with st.form(f"{PAGE_KEY}_filters"):
        cols = st.columns(3)
        selections = {}
        for idx, (name, label) in enumerate(
            (
                ("project", "Project"),
                ("assignee", "Assignee"),
                ("status", "Status"),
                ("issueType", "Issue Type"),
                ("priority", "Priority"),
                ("labels", "Labels"),
            )
        ):
            labels = [str(o.get("label")) for o in options.get(name, [])]
            chosen = cols[idx % 3].multiselect(label, labels, key=f"{PAGE_KEY}_{name}")
            selections[name] = pick_options(options.get(name, []), chosen)
        sprint_text = st.text_input("Sprint (ids or names, comma separated)")
        date_range = st.date_input("Updated between", value=())
        exceeded_only = st.checkbox("Only issues over estimate")
        submitted = st.form_submit_button("Fetch Issues", type="primary")
    if not submitted:
        return None
    return build_filter_payload(selections, sprint_text, date_range, exceeded_only)


def _render_exports(rows) -> None:
    summary = export_summary(rows)
    st.caption(
        f"{summary['total_issues']} issue(s), time spent {summary['total_time_spent']}, "
        f"estimate {summary['total_estimate']}"
    )
    fields = st.multiselect("Export columns", list(EXPORT_FIELDS), default=list(EXPORT_FIELDS))
    mode = st.radio("Comments", sorted(COMMENT_MODES), index=1, horizontal=True)
    records = prepare_export_rows(rows, mode, fields)
    encoding = load_settings().download_encoding
    c1, c2, c3 = st.columns(3)
    c1.download_button(
        "Download CSV",
        data=to_csv_bytes(records, fields, encoding=encoding),
        file_name="jira_report.csv",
        mime=CSV_MIME_TYPE,
    )
    c2.download_button(
        "Download Excel",
        data=to_excel_bytes(records, fields),
        file_name="jira_report.xlsx",
        mime=XLSX_MIME_TYPE,
    )
    c3.download_button(
        "Download PDF",
        data=to_pdf_bytes(rows, mode, fields),
        file_name="jira_report.pdf",
        mime=PDF_MIME_TYPE,
    )


def _render_bulk_comment(resolvers: ReportResolvers, keys: list[str]) -> None:
    with st.expander("Add comment to issues"):
        chosen = st.multiselect("Issues", keys, key=f"{PAGE_KEY}_comment_keys")
        text = st.text_area("Comment")
        users = _load_options(resolvers).get("assignee", [])
        cc = st.multiselect(
            "Mention users", [str(u.get("label")) for u in users], key=f"{PAGE_KEY}_comment_mentions"
        )
        if st.button("Post Comment", disabled=not chosen):
            try:
                results = resolvers.invoke("bulkAddComment", build_comment_payload(chosen, text, users, cc))
            except ReportError as exc:
                st.error(str(exc))
                return
            failed = [r for r in results if r["status"] != "success"]
            if failed:
                st.warning(f"{len(failed)} comment(s) failed: {', '.join(r['key'] for r in failed)}")
            else:
                st.success(f"Commented on {len(results)} issue(s).")


def _render_saved_reports(resolvers: ReportResolvers, payload: dict[str, Any] | None) -> None:
    with st.expander("Saved reports"):
        saved = resolvers.invoke("listReports")
        for report in saved:
            c1, c2, c3 = st.columns([4, 1, 1])
            c1.write(f"**{report['name']}** ({report['visibility']})")
            if c2.button("Load", key=f"load_{report['id']}"):
                st.session_state[f"{PAGE_KEY}_payload"] = report["filters"]
                st.rerun()
            if report["ownerAccountId"] == resolvers.caller.account_id and c3.button(
                "Delete", key=f"del_{report['id']}"
            ):
                resolvers.invoke("deleteReport", {"reportId": report["id"]})
                st.rerun()
        if payload is None:
            return
        name = st.text_input("Report name")
        visibility = st.selectbox("Visibility", ["private", "project", "global"])
        if st.button("Save Report"):
            try:
                resolvers.invoke("saveReport", {"name": name, "visibility": visibility, "filters": payload})
                st.success("Report saved.")
            except ReportError as exc:
                st.error(str(exc))


@register_page("Issue Report")
def issue_report_page():
    st.title("Issue Report")
    resolvers: ReportResolvers | None = st.session_state.get("resolvers")
    if resolvers is None:
        st.warning(f"Initialize connection on Setup page first (or provide {SETTINGS_FILENAME}).")
        return

    submitted = _filter_form(resolvers)
    if submitted is not None:
        st.session_state[f"{PAGE_KEY}_payload"] = submitted
    payload = st.session_state.get(f"{PAGE_KEY}_payload")
    if payload is None:
        st.info("Choose filters and fetch issues.")
        _render_saved_reports(resolvers, None)
        return

    rows = resolvers.user_service.fetch_rows(FilterSet.from_dict(payload))
    st.session_state["filters_payload"] = payload
    if not rows:
        st.info("No issues found for these filters.")
    else:
        df = rows_to_dataframe(rows)
        st.dataframe(df.drop(columns=["time_spent_seconds", "estimate_seconds"]), hide_index=True)
        _render_bulk_comment(resolvers, [r.key for r in rows])
        _render_exports(rows)
    _render_saved_reports(resolvers, payload)
