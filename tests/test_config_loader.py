import pytest
from pydantic import ValidationError

from jetset.utils.config_loader import AppConfig, load_app_config


def test_repo_config_loads():
    cfg = load_app_config()
    assert cfg.frontend_url == "https://www.jetsetterss.com"
    assert cfg.quotes.validity_days == 7
    assert cfg.auth.admin_roles == ["admin", "staff"]


def test_missing_sections_use_defaults(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text("pagination:\n  flights_per_page: 25\n", encoding="utf-8")

    cfg = load_app_config(path)
    assert cfg.pagination.flights_per_page == 25
    assert cfg.email.company_name == AppConfig().email.company_name


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(tmp_path / "nope.yml")


def test_invalid_values_are_rejected(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text("quotes:\n  validity_days: soon\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_app_config(path)
