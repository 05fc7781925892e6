"""Tests for the containment config module."""
import threading

from promptnest import (
    ContainmentConfig,
    DEFAULT_CONFIG,
    clear_current_config,
    get_current_config,
    set_current_config,
)


def test_defaults_when_not_set():
    """Without a published config the defaults apply."""
    assert get_current_config() is DEFAULT_CONFIG
    assert DEFAULT_CONFIG.enabled is True
    assert DEFAULT_CONFIG.debounce_seconds == 0.2
    assert DEFAULT_CONFIG.settle_seconds == 0.1


def test_set_and_get():
    config = ContainmentConfig(enabled=False, namespace="other")
    set_current_config(config)

    assert get_current_config() is config


def test_clear_returns_previous():
    config = ContainmentConfig(debounce_seconds=0.5)
    set_current_config(config)

    assert clear_current_config() is config
    assert get_current_config() is DEFAULT_CONFIG


def test_with_enabled_copies():
    disabled = DEFAULT_CONFIG.with_enabled(False)

    assert disabled.enabled is False
    assert DEFAULT_CONFIG.enabled is True
    assert disabled.namespace == DEFAULT_CONFIG.namespace


def test_config_is_thread_local():
    """A config published on one thread is not seen by another."""
    set_current_config(ContainmentConfig(enabled=False))
    seen = []

    thread = threading.Thread(target=lambda: seen.append(get_current_config()))
    thread.start()
    thread.join()

    assert seen == [DEFAULT_CONFIG]
