"""
Tests for durable server settings.
"""

from product_update_server.services.settings import SETTINGS_OPTION, SettingsService


def test_defaults_are_persisted_on_first_read(store):
    settings = SettingsService(store).get_settings()

    assert settings.cache_ttl == 3600
    assert settings.enable_cron is False
    assert store.get_option(SETTINGS_OPTION) == {"cache_ttl": 3600, "enable_cron": False}


def test_stored_values_merge_over_defaults(store):
    store.update_option(SETTINGS_OPTION, {"enable_cron": True, "unrelated": "x"})

    settings = SettingsService(store).get_settings()

    assert settings.cache_ttl == 3600
    assert settings.enable_cron is True


def test_invalid_stored_settings_fall_back_to_defaults(store):
    store.update_option(SETTINGS_OPTION, {"cache_ttl": "forever"})

    assert SettingsService(store).get_settings().cache_ttl == 3600


def test_save_takes_absolute_ttl(store):
    saved = SettingsService(store).save_settings(cache_ttl=-120, enable_cron=True)

    assert saved.cache_ttl == 120
    assert SettingsService(store).get_settings() == saved


def test_zero_ttl_is_stored_but_not_effective(store):
    saved = SettingsService(store).save_settings(cache_ttl=0, enable_cron=False)

    assert saved.cache_ttl == 0
    assert saved.effective_cache_ttl == 3600
