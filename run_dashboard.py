"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``jira_reports/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

from importlib import import_module
from pathlib import Path

import streamlit as st

from jira_reports.app import main

st.set_page_config(layout="wide")


def _auto_init_resolvers():
    """Initialize the reports service from Streamlit secrets if available."""
    if "resolvers" in st.session_state:
        return

    from jira_reports.pages.setup import connect, secret

    server = secret("JIRA_SERVER")
    email = secret("JIRA_EMAIL")
    token = secret("JIRA_API_TOKEN") or secret("JIRA_TOKEN")

    if server and email and token:
        st.sidebar.info("Secrets found, attempting to connect to Jira...")
        try:
            st.session_state["resolvers"] = connect(server, email, token)
            st.session_state["jira_server"] = server
            st.session_state["jira_email"] = email
            st.sidebar.success("Jira connection successful!")
        except Exception as e:
            st.sidebar.error(f"Jira connection failed: {e}")
            st.session_state.pop("resolvers", None)
    else:
        st.sidebar.warning("Jira secrets not found. Please use the Setup page.")


PAGES_DIR = Path(__file__).parent / "jira_reports" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"jira_reports.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception as e:  # pragma: no cover
        print(f"Failed importing page {mod_name}: {e}")

_auto_init_resolvers()

if __name__ == "__main__":
    main()
