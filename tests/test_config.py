from jira_reports.core.config import load_settings


def test_defaults_without_file(tmp_path):
    settings = load_settings(tmp_path / "absent.yaml", environ={})
    assert settings.store_path == ".jira_reports/store.json"
    assert settings.max_results == 1000


def test_yaml_then_env_overrides(tmp_path):
    path = tmp_path / "reports.yaml"
    path.write_text(
        "jira_server: https://yaml.atlassian.net\n"
        "jira_email: yaml@example.com\n"
        "jira_api_token: yaml-token\n"
        "max_results: '250'\n"
        "unknown_key: ignored\n"
    )
    settings = load_settings(path, environ={"JIRA_EMAIL": "env@example.com"})
    assert settings.jira_server == "https://yaml.atlassian.net"
    assert settings.jira_email == "env@example.com"
    assert settings.max_results == 250
    assert settings.service_credentials() == ("env@example.com", "yaml-token")


def test_service_credentials_preferred(tmp_path):
    settings = load_settings(
        tmp_path / "absent.yaml",
        environ={"JIRA_SERVICE_EMAIL": "bot@example.com", "JIRA_SERVICE_API_TOKEN": "bot-token"},
    )
    assert settings.service_credentials() == ("bot@example.com", "bot-token")


def test_broken_yaml_is_ignored(tmp_path):
    path = tmp_path / "reports.yaml"
    path.write_text("jira_server: [unclosed\n")
    assert load_settings(path, environ={}).jira_email == ""
