"""Import fixtures from sqla_rest.testing for test discovery."""

from sqla_rest.testing._fixtures import isolated_rest_state, rest_config, settings_engine

__all__ = ["isolated_rest_state", "rest_config", "settings_engine"]
