"""sqla-rest testing utilities: identities, assertions, fixtures and a SQLite shim.

Provides test helpers for code that parses, compiles and runs queries:

- **MockIdentity / factories**: Lightweight callers for RLS transactions.
- **Assertion helpers**: ``assert_compiles_to``, ``assert_where_equals``,
  ``assert_parse_error``.
- **Fixtures**: ``rest_config``, ``isolated_rest_state``, ``settings_engine``.
- **SQLite shim**: ``install_settings_shim`` emulates ``set_config`` and
  ``current_setting`` so RLS transactions run without PostgreSQL.

Example::

    from sqla_rest.testing import assert_compiles_to

    def test_filter():
        assert_compiles_to(
            "name.eq=John&limit=5",
            "users",
            'SELECT * FROM "users" WHERE "name" = $1 LIMIT $2',
            ["John", 5],
        )
"""

from sqla_rest.testing._assertions import (
    assert_compiles_to,
    assert_parse_error,
    assert_where_equals,
)
from sqla_rest.testing._fixtures import isolated_rest_state, rest_config, settings_engine
from sqla_rest.testing._identities import (
    MockIdentity,
    make_anonymous,
    make_service_role,
    make_user,
)
from sqla_rest.testing._isolation import isolated_rest
from sqla_rest.testing._sqlite import SettingCall, SettingsRecorder, install_settings_shim

__all__ = [
    "MockIdentity",
    "SettingCall",
    "SettingsRecorder",
    "assert_compiles_to",
    "assert_parse_error",
    "assert_where_equals",
    "install_settings_shim",
    "isolated_rest",
    "isolated_rest_state",
    "make_anonymous",
    "make_service_role",
    "make_user",
    "rest_config",
    "settings_engine",
]
