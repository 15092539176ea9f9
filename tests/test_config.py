"""Tests for garden_sync.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models).
"""

import logging

import pytest

from garden_sync.config import Config, load_config, validate_config

_ENV_VARS = (
    "GARDEN_GITHUB_TOKEN",
    "GITHUB_TOKEN",
    "GARDEN_OWNER",
    "GARDEN_REPOSITORY",
    "GARDEN_TEMPLATE_OWNER",
    "GARDEN_TEMPLATE_REPOSITORY",
    "GARDEN_API_URL",
    "GARDEN_BRANCH",
    "GARDEN_DEBUG",
    "GARDEN_MAX_PARALLEL_REQUESTS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _set_required(monkeypatch):
    monkeypatch.setenv("GARDEN_GITHUB_TOKEN", "ghp_env")
    monkeypatch.setenv("GARDEN_OWNER", "alice")
    monkeypatch.setenv("GARDEN_REPOSITORY", "garden")


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    def test_valid_config(self):
        validate_config(Config(token="t", owner="alice", repository="garden"))

    def test_invalid_url_scheme(self):
        config = Config(
            token="t", owner="alice", repository="garden", api_url="ftp://x"
        )
        with pytest.raises(ValueError, match="must start with http:// or https://"):
            validate_config(config)

    def test_empty_host(self):
        config = Config(
            token="t", owner="alice", repository="garden", api_url="https://"
        )
        with pytest.raises(ValueError, match="must include a hostname"):
            validate_config(config)

    def test_trailing_slash_stripped(self):
        config = Config(
            token="t",
            owner="alice",
            repository="garden",
            api_url=" https://github.example.com/api/v3/ ",
        )
        validate_config(config)
        assert config.api_url == "https://github.example.com/api/v3"

    def test_empty_token(self):
        config = Config(token="  ", owner="alice", repository="garden")
        with pytest.raises(ValueError, match="token cannot be empty"):
            validate_config(config)

    def test_empty_owner(self):
        config = Config(token="t", owner=" ", repository="garden")
        with pytest.raises(ValueError, match="Owner cannot be empty"):
            validate_config(config)

    def test_slash_in_repository(self):
        config = Config(token="t", owner="alice", repository="alice/garden")
        with pytest.raises(ValueError, match="must not contain '/'"):
            validate_config(config)

    def test_names_stripped(self):
        config = Config(token="t", owner=" alice ", repository="garden\n")
        validate_config(config)
        assert (config.owner, config.repository) == ("alice", "garden")

    @pytest.mark.parametrize("value", [0, 21, -1])
    def test_max_parallel_out_of_range(self, value):
        config = Config(
            token="t",
            owner="alice",
            repository="garden",
            max_parallel_requests=value,
        )
        with pytest.raises(ValueError, match="between 1 and 20"):
            validate_config(config)

    def test_template_itself_logs_warning(self, caplog):
        config = Config(token="t", owner="oleeskild", repository="digitalgarden")
        with caplog.at_level(logging.WARNING, logger="garden_sync.config"):
            validate_config(config)
        assert "is the template itself" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    def test_load_from_env_vars(self, monkeypatch):
        _set_required(monkeypatch)

        config = load_config()

        assert config.token == "ghp_env"
        assert config.owner == "alice"
        assert config.repository == "garden"
        assert config.template_owner == "oleeskild"
        assert config.template_repository == "digitalgarden"
        assert config.api_url == "https://api.github.com"
        assert config.branch is None
        assert config.max_parallel_requests == 1

    def test_github_token_fallback(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.delenv("GARDEN_GITHUB_TOKEN")
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_actions")

        assert load_config().token == "ghp_actions"

    def test_cli_args_override_env(self, monkeypatch):
        _set_required(monkeypatch)

        config = load_config(token="ghp_cli", owner="bob", repository="notes")

        assert (config.token, config.owner, config.repository) == (
            "ghp_cli",
            "bob",
            "notes",
        )

    def test_missing_token_raises(self, monkeypatch):
        monkeypatch.setenv("GARDEN_OWNER", "alice")
        monkeypatch.setenv("GARDEN_REPOSITORY", "garden")
        with pytest.raises(ValueError, match="GitHub token not found"):
            load_config()

    def test_missing_owner_raises(self, monkeypatch):
        monkeypatch.setenv("GARDEN_GITHUB_TOKEN", "t")
        with pytest.raises(ValueError, match="Repository owner not found"):
            load_config()

    def test_missing_repository_raises(self, monkeypatch):
        monkeypatch.setenv("GARDEN_GITHUB_TOKEN", "t")
        monkeypatch.setenv("GARDEN_OWNER", "alice")
        with pytest.raises(ValueError, match="Repository name not found"):
            load_config()

    def test_template_and_branch_from_env(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_TEMPLATE_OWNER", "fork")
        monkeypatch.setenv("GARDEN_TEMPLATE_REPOSITORY", "garden-template")
        monkeypatch.setenv("GARDEN_BRANCH", "publish")

        config = load_config()

        assert config.template_owner == "fork"
        assert config.template_repository == "garden-template"
        assert config.branch == "publish"

    @pytest.mark.parametrize("value", ["true", "1", "yes", "on", "TRUE"])
    def test_debug_truthy_values(self, monkeypatch, value):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_DEBUG", value)
        assert load_config().debug is True

    def test_debug_default_false(self, monkeypatch):
        _set_required(monkeypatch)
        assert load_config().debug is False

    def test_max_parallel_from_env(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_MAX_PARALLEL_REQUESTS", "4")
        assert load_config().max_parallel_requests == 4

    def test_max_parallel_non_numeric(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_MAX_PARALLEL_REQUESTS", "many")
        with pytest.raises(ValueError, match="GARDEN_MAX_PARALLEL_REQUESTS"):
            load_config()

    def test_max_parallel_too_high(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_MAX_PARALLEL_REQUESTS", "50")
        with pytest.raises(ValueError, match="between 1 and 20"):
            load_config()

    def test_token_whitespace_stripped(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_GITHUB_TOKEN", "  ghp_env\n")
        assert load_config().token == "ghp_env"


class TestLoadConfigWithYamlFallbacks:
    def test_yaml_fallback_used_when_no_env_or_cli(self):
        config = load_config(
            yaml_fallbacks={
                "token": "ghp_yaml",
                "owner": "yaml-owner",
                "repository": "yaml-garden",
                "api_url": "https://github.example.com/api/v3",
            }
        )

        assert config.token == "ghp_yaml"
        assert config.owner == "yaml-owner"
        assert config.api_url == "https://github.example.com/api/v3"

    def test_env_var_overrides_yaml_fallback(self, monkeypatch):
        _set_required(monkeypatch)

        config = load_config(
            yaml_fallbacks={"owner": "yaml-owner", "branch": "yaml-branch"}
        )

        assert config.owner == "alice"
        assert config.branch == "yaml-branch"

    def test_cli_overrides_env_and_yaml(self, monkeypatch):
        _set_required(monkeypatch)

        config = load_config(owner="cli-owner", yaml_fallbacks={"owner": "yaml"})

        assert config.owner == "cli-owner"

    def test_numeric_field_fallback_max_parallel(self, monkeypatch):
        _set_required(monkeypatch)

        config = load_config(yaml_fallbacks={"max_parallel_requests": 8})

        assert config.max_parallel_requests == 8

    def test_numeric_field_env_overrides_yaml(self, monkeypatch):
        _set_required(monkeypatch)
        monkeypatch.setenv("GARDEN_MAX_PARALLEL_REQUESTS", "2")

        config = load_config(yaml_fallbacks={"max_parallel_requests": 8})

        assert config.max_parallel_requests == 2

    def test_boolean_field_fallback_debug(self, monkeypatch):
        _set_required(monkeypatch)
        assert load_config(yaml_fallbacks={"debug": True}).debug is True

    def test_empty_yaml_fallbacks_same_as_none(self, monkeypatch):
        _set_required(monkeypatch)
        assert load_config(yaml_fallbacks={}) == load_config(yaml_fallbacks=None)
