"""Connection setup page: collect Jira credentials and initialize the resolvers."""

from __future__ import annotations

import streamlit as st

from jira_reports.app import register_page
from jira_reports.core.config import load_settings
from jira_reports.core.jira_client import JiraAPI
from jira_reports.core.service import IssueService
from jira_reports.core.store import JsonFileStore
from jira_reports.resolvers import CallerContext, ReportResolvers


def secret(name: str) -> str | None:
    """Look up ``name`` in a ``[jira]`` secrets section, then at top level."""
    jira_secrets = st.secrets.get("jira", {})
    return jira_secrets.get(name) or st.secrets.get(name)


def connect(server: str, email: str, token: str) -> ReportResolvers:
    settings = load_settings()
    user_api = JiraAPI(server, email, token)
    me = user_api.myself()
    service_email = secret("JIRA_SERVICE_EMAIL") or settings.service_email or email
    service_token = secret("JIRA_SERVICE_API_TOKEN") or settings.service_api_token or token
    service_api = user_api if service_email == email else JiraAPI(server, service_email, service_token)
    return ReportResolvers(
        IssueService(user_api, max_results=settings.max_results),
        IssueService(service_api, max_results=settings.max_results),
        JsonFileStore(settings.store_path),
        CallerContext(account_id=me.get("accountId", "")),
    )


@register_page("Setup / Connection")
def setup_page():
    st.title("Jira Connection Setup")
    st.caption("Enter credentials (use secrets manager in production).")

    server = st.text_input(
        "Jira Server URL",
        value=st.session_state.get("jira_server") or secret("JIRA_SERVER") or "",
    )
    email = st.text_input(
        "Email / Username",
        value=st.session_state.get("jira_email") or secret("JIRA_EMAIL") or "",
    )
    token = st.text_input(
        "API Token",
        type="password",
        value=secret("JIRA_API_TOKEN") or secret("JIRA_TOKEN") or "",
    )
    init_btn = st.button("Initialize Connection", type="primary")

    if init_btn:
        if not (server and email and token):
            st.error("All fields required.")
            return
        try:
            st.session_state["resolvers"] = connect(server, email, token)
            st.session_state["jira_server"] = server
            st.session_state["jira_email"] = email
            st.success("Connection initialized.")
        except Exception as e:  # pragma: no cover
            st.error(f"Failed to initialize Jira client: {e}")

    if "resolvers" in st.session_state:
        st.info("Reports service ready.")
