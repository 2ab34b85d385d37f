"""Tests for configuration models and the YAML loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from promowatch.core.config.loader import (
    CONFIG_ENV_VAR,
    ConfigError,
    load_app_config,
    validate_config_file,
)
from promowatch.core.config.models import (
    AppConfig,
    DetectionConfig,
    NormalizationConfig,
    TargetConfig,
    is_safe_selector,
    is_safe_target_url,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoader:
    def test_defaults_when_default_file_missing(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        config = load_app_config()
        assert config == AppConfig()
        assert config.detection.identity_fields == ["title"]

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_app_config(tmp_path / "missing.yaml")

    def test_env_var_path(self, config_file):
        config = load_app_config()
        assert config.logging.file is None
        assert config.fetch.retry_backoff == 0

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_SLACK_WEBHOOK", "https://hooks.slack.com/services/T/B/X")
        monkeypatch.delenv("TEST_UNSET_LEVEL", raising=False)
        path = _write(
            tmp_path / "c.yaml",
            "notification:\n"
            "  slack_webhook: ${TEST_SLACK_WEBHOOK}\n"
            "logging:\n"
            "  level: ${TEST_UNSET_LEVEL:-debug}\n",
        )
        config = load_app_config(path)
        assert config.notification.slack_webhook == "https://hooks.slack.com/services/T/B/X"
        assert config.logging.level == "DEBUG"

    def test_empty_file(self, tmp_path):
        assert load_app_config(_write(tmp_path / "c.yaml", "")) == AppConfig()

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_app_config(_write(tmp_path / "c.yaml", "storage: [unclosed"))

    def test_non_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="mapping"):
            load_app_config(_write(tmp_path / "c.yaml", "- a\n- b\n"))

    def test_validation_error(self, tmp_path):
        path = _write(tmp_path / "c.yaml", "similarity_typo: 1\nfetch:\n  max_retries: 0\n")
        with pytest.raises(ConfigError) as excinfo:
            load_app_config(path)
        assert "max_retries" in excinfo.value.details

    def test_validate_config_file(self, tmp_path):
        path = _write(
            tmp_path / "c.yaml",
            "targets:\n  - url: http://example.com/deals\n    selector: .promo\n",
        )
        errors = validate_config_file(path)
        assert len(errors) == 1
        assert errors[0].startswith("targets.0.url")

    def test_validate_valid_file(self, tmp_path):
        path = _write(
            tmp_path / "c.yaml",
            "targets:\n  - url: https://example.com/deals\n    selector: .promo\n",
        )
        assert validate_config_file(path) == []

    def test_validate_missing_file(self, tmp_path):
        errors = validate_config_file(tmp_path / "missing.yaml")
        assert errors and "not found" in errors[0]

    def test_shipped_example_is_valid(self):
        example = Path(__file__).resolve().parents[1] / "configs" / "promowatch.yaml"
        assert validate_config_file(example) == []


class TestDetectionConfig:
    def test_identity_fields_canonical_order(self):
        assert DetectionConfig(identity_fields=["price", "title"]).identity_fields == ["title", "price"]

    @pytest.mark.parametrize("fields", [[], ["bogus"]])
    def test_identity_fields_invalid(self, fields):
        with pytest.raises(ValidationError):
            DetectionConfig(identity_fields=fields)

    def test_invalid_regex(self):
        with pytest.raises(ValidationError):
            NormalizationConfig(filler_patterns=["(unclosed"])


class TestTargets:
    @pytest.mark.parametrize(
        "url",
        [
            "https://deals.example.com/offers",
            "https://example.com/travel?page=2",
        ],
    )
    def test_safe_urls(self, url):
        assert is_safe_target_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://example.com/deals",
            "ftp://example.com/deals",
            "https://localhost/deals",
            "https://127.0.0.1/deals",
            "https://10.0.0.5/deals",
            "https://169.254.169.254/latest",
            "https://printer.local/",
            "not a url",
        ],
    )
    def test_unsafe_urls(self, url):
        assert not is_safe_target_url(url)

    def test_allowed_domains(self):
        assert is_safe_target_url("https://deals.example.com/", ["example.com"])
        assert not is_safe_target_url("https://example.org/", ["example.com"])
        assert not is_safe_target_url("https://badexample.com/", ["example.com"])

    @pytest.mark.parametrize("selector", [".promo-card", "#deals > li", "div.offer[data-id='1']"])
    def test_safe_selectors(self, selector):
        assert is_safe_selector(selector)

    @pytest.mark.parametrize(
        "selector",
        ["", "<script>", "div { color: red }", "a[href='javascript:x']", "x" * 201],
    )
    def test_unsafe_selectors(self, selector):
        assert not is_safe_selector(selector)

    def test_target_validation(self):
        target = TargetConfig(url=" https://example.com/deals ", selector=" .promo ")
        assert target.url == "https://example.com/deals"
        assert target.selector == ".promo"
        assert target.display_name == "https://example.com/deals"

    def test_target_rejects_markup_in_name(self):
        with pytest.raises(ValidationError):
            TargetConfig(url="https://example.com/", selector=".promo", name="<b>Deals</b>")

    def test_targets_must_match_allowed_domains(self):
        with pytest.raises(ValidationError):
            AppConfig(
                allowed_domains=["example.com"],
                targets=[TargetConfig(url="https://example.org/", selector=".promo")],
            )
