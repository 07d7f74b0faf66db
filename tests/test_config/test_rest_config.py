"""Tests for RestConfig: layered configuration."""

from __future__ import annotations

import pytest
from sqlalchemy.pool import StaticPool

from sqla_rest.config._config import (
    RestConfig,
    _reset_global_config,
    _set_global_config,
    configure,
    create_async_rest_engine,
    create_rest_engine,
    get_global_config,
)
from sqla_rest.pagination import PaginationPolicy


class TestRestConfigDefaults:
    """Test default configuration values."""

    def test_pagination_defaults(self) -> None:
        config = RestConfig()
        assert config.max_page_size == 1000
        assert config.max_total_results == 10000
        assert config.default_page_size == 1000

    def test_session_defaults(self) -> None:
        config = RestConfig()
        assert config.anon_role == "anon"
        assert config.claims_setting == "request.jwt.claims"
        assert config.session_var_prefix == "app"
        assert config.set_local_role is True

    def test_compile_defaults(self) -> None:
        config = RestConfig()
        assert config.paramstyle == "numeric_dollar"
        assert config.log_compiled_sql is False

    def test_pagination_policy(self) -> None:
        config = RestConfig(max_page_size=10, max_total_results=-1, default_page_size=5)
        assert config.pagination_policy == PaginationPolicy(10, -1, 5)


class TestRestConfigValidation:
    @pytest.mark.parametrize("field", ["max_page_size", "max_total_results", "default_page_size"])
    def test_rejects_zero_bounds(self, field: str) -> None:
        with pytest.raises(ValueError):
            RestConfig(**{field: 0})

    def test_rejects_unknown_paramstyle(self) -> None:
        with pytest.raises(ValueError, match="paramstyle"):
            RestConfig(paramstyle="dollar")  # type: ignore[arg-type]

    def test_rejects_bad_anon_role(self) -> None:
        with pytest.raises(ValueError, match="anon_role"):
            RestConfig(anon_role='anon"; RESET ROLE; --')

    def test_rejects_bad_claims_setting(self) -> None:
        with pytest.raises(ValueError, match="claims_setting"):
            RestConfig(claims_setting="claims")

    def test_rejects_bad_prefix(self) -> None:
        with pytest.raises(ValueError, match="session_var_prefix"):
            RestConfig(session_var_prefix="my-app")

    def test_empty_prefix_disables_session_vars(self) -> None:
        assert RestConfig(session_var_prefix="").session_var_prefix == ""


class TestRestConfigFrozen:
    def test_cannot_set_fields(self) -> None:
        config = RestConfig()
        with pytest.raises(AttributeError):
            config.max_page_size = 5  # type: ignore[misc]


class TestRestConfigMerge:
    """Test merge semantics for layered configuration."""

    def test_merge_overrides(self) -> None:
        merged = RestConfig().merge(max_page_size=50, anon_role="web_anon")
        assert merged.max_page_size == 50
        assert merged.anon_role == "web_anon"
        assert merged.max_total_results == 10000  # unchanged

    def test_merge_with_no_overrides(self) -> None:
        config = RestConfig(max_page_size=7)
        assert config.merge() == config

    def test_merge_false_is_applied(self) -> None:
        assert RestConfig().merge(set_local_role=False).set_local_role is False

    def test_merge_returns_new_instance(self) -> None:
        config = RestConfig()
        assert config.merge(max_page_size=1) is not config

    def test_merge_validates(self) -> None:
        with pytest.raises(ValueError):
            RestConfig().merge(max_page_size=-7)


class TestGlobalConfig:
    def setup_method(self) -> None:
        _reset_global_config()

    def teardown_method(self) -> None:
        _reset_global_config()

    def test_default_global(self) -> None:
        assert get_global_config() == RestConfig()

    def test_configure_merges(self) -> None:
        configure(max_page_size=100)
        configure(default_page_size=20)
        cfg = get_global_config()
        assert cfg.max_page_size == 100
        assert cfg.default_page_size == 20

    def test_configure_returns_new_global(self) -> None:
        result = configure(log_compiled_sql=True)
        assert result is get_global_config()

    def test_set_global_config(self) -> None:
        cfg = RestConfig(max_page_size=3)
        _set_global_config(cfg)
        assert get_global_config() is cfg

    def test_reset(self) -> None:
        configure(max_page_size=100)
        _reset_global_config()
        assert get_global_config().max_page_size == 1000


class TestEngineFactories:
    def test_rest_engine_bounds_pool_wait(self, tmp_path) -> None:
        engine = create_rest_engine(f"sqlite:///{tmp_path / 'db.sqlite'}", pool_timeout=2.5)
        try:
            assert engine.pool.timeout() == 2.5
        finally:
            engine.dispose()

    def test_custom_poolclass_skips_timeout(self) -> None:
        engine = create_rest_engine("sqlite://", poolclass=StaticPool)
        try:
            assert isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()

    def test_async_engine(self) -> None:
        pytest.importorskip("aiosqlite")
        engine = create_async_rest_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        assert engine.sync_engine.dialect.name == "sqlite"
