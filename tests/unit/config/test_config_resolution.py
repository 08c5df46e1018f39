"""Unit tests for configuration resolution.

These tests verify:
- Defaults, project file, environment and programmatic precedence.
- Validation of the LIMS settings schema.
- Redaction of the password in str/repr/audit output.
- The ``config_scope`` context manager.
"""

import dataclasses
import os

import pytest

from lims_pipeline.config import (
    ConfigFileError,
    FrozenConfig,
    config_scope,
    resolve_config,
)


@pytest.mark.unit
class TestResolution:
    def test_defaults(self):
        resolved = resolve_config()

        assert resolved.base_url == "http://localhost:8080/LimsRest"
        assert resolved.cmo_only is False
        assert resolved.sample_id_filter is None
        assert resolved.max_concurrency == 16
        assert resolved.timeout_seconds == 60.0
        assert set(resolved.origin.values()) == {"default"}

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("LIMS_CMO_ONLY", "1")
        monkeypatch.setenv("LIMS_SAMPLE_ID_FILTER", "s1,s2")
        monkeypatch.setenv("LIMS_MAX_CONCURRENCY", "4")

        resolved = resolve_config()

        assert resolved.cmo_only is True
        assert resolved.sample_id_filter == "s1,s2"
        assert resolved.max_concurrency == 4
        assert resolved.origin["cmo_only"] == "env"
        assert resolved.origin["base_url"] == "default"

    def test_programmatic_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("LIMS_CMO_ONLY", "true")

        resolved = resolve_config({"cmo_only": False, "unknown": 1})

        assert resolved.cmo_only is False
        assert resolved.origin["cmo_only"] == "programmatic"
        assert "unknown" not in resolved.origin

    def test_project_file_is_read(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            "[tool.lims_pipeline]\n"
            'base_url = "https://lims.example.org/LimsRest"\n'
            "max_concurrency = 8\n"
            "[tool.lims_pipeline.profiles.cmo]\n"
            "cmo_only = true\n",
            encoding="utf-8",
        )

        base = resolve_config(project_root=tmp_path)
        profiled = resolve_config(project_root=tmp_path, profile="cmo")

        assert base.base_url == "https://lims.example.org/LimsRest"
        assert base.max_concurrency == 8
        assert base.origin["base_url"] == "file"
        assert profiled.cmo_only is True
        assert profiled.base_url == "http://localhost:8080/LimsRest"

    def test_unknown_profile_raises(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            "[tool.lims_pipeline]\ncmo_only = true\n", encoding="utf-8"
        )

        with pytest.raises(ConfigFileError, match="Profile 'nope' not found"):
            resolve_config(project_root=tmp_path, profile="nope")

    def test_env_file_is_loaded(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\nLIMS_USERNAME=svc-user\nLIMS_PASSWORD='s3cret'\n",
            encoding="utf-8",
        )
        monkeypatch.delenv("LIMS_USERNAME", raising=False)
        monkeypatch.delenv("LIMS_PASSWORD", raising=False)

        try:
            resolved = resolve_config(use_env_file=env_file)
        finally:
            os.environ.pop("LIMS_USERNAME", None)
            os.environ.pop("LIMS_PASSWORD", None)

        assert resolved.username == "svc-user"
        assert resolved.password == "s3cret"

    def test_malformed_env_file_line_raises(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("# header\nLIMS_PASSWORD s3cret\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid format at line 2") as exc_info:
            resolve_config(use_env_file=env_file)

        assert "s3cret" not in str(exc_info.value)
        assert "LIMS_PASSWORD" not in os.environ


@pytest.mark.unit
class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_concurrency": 0},
            {"timeout_seconds": 0},
            {"base_url": "ftp://lims"},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            resolve_config(overrides)

    def test_invalid_environment_raises(self, monkeypatch):
        monkeypatch.setenv("LIMS_MAX_CONCURRENCY", "lots")
        with pytest.raises(ValueError, match="Environment configuration error"):
            resolve_config()

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_sample_filter_becomes_none(self, value):
        assert resolve_config({"sample_id_filter": value}).sample_id_filter is None

    def test_base_url_trailing_slash_stripped(self):
        resolved = resolve_config({"base_url": " https://lims.example.org/api/ "})
        assert resolved.base_url == "https://lims.example.org/api"


@pytest.mark.unit
class TestRedactionAndFreezing:
    def test_password_redacted(self):
        resolved = resolve_config({"username": "svc", "password": "s3cret"})
        frozen = resolved.to_frozen()

        for text in (str(resolved), repr(resolved), str(frozen), resolved.audit()):
            assert "s3cret" not in text
        assert "password: programmatic:<redacted>" in resolved.audit()
        assert frozen.password == "s3cret"

    def test_env_audit_names_variable(self, monkeypatch):
        monkeypatch.setenv("LIMS_CMO_ONLY", "true")
        assert "cmo_only: env:LIMS_CMO_ONLY=True" in resolve_config().audit()

    def test_frozen_config_is_immutable(self):
        frozen = resolve_config().to_frozen()
        assert isinstance(frozen, FrozenConfig)
        with pytest.raises(dataclasses.FrozenInstanceError):
            frozen.cmo_only = True  # type: ignore[misc]


@pytest.mark.unit
def test_config_scope_overrides_resolution():
    scoped = resolve_config().with_overrides(cmo_only=True)

    with config_scope(scoped):
        inside = resolve_config()
        inside_with_override = resolve_config({"max_concurrency": 2})

    assert inside is scoped
    assert inside_with_override.cmo_only is True
    assert inside_with_override.max_concurrency == 2
    assert resolve_config().cmo_only is False
