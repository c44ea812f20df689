# tests/core/test_config_manager.py
import json

import pytest

from a11ypiper.core.managers.config_manager import ConfigManager
from a11ypiper.core.utils.path_utils import PathUtils

# Een standaard, voorspelbare configuratie voor onze tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "crawler": {
        "max_pages": 25,
        "show_progress": False
    },
    "matcher": {
        "acceptance_threshold": 0.7
    }
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Een fixture die een geïsoleerde testomgeving opzet voor de ConfigManager:
    - Creëert een tijdelijke package root met een nep 'settings.json'.
    - Monkeypatched PathUtils om naar deze tijdelijke locatie te wijzen.
    - Herlaadt na de test de echte configuratie.
    """
    package_root = tmp_path / "a11ypiper"
    package_root.mkdir()
    (package_root / "settings.json").write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    monkeypatch.setattr(PathUtils, "get_package_root", lambda: package_root)

    manager = ConfigManager()
    manager.reset()  # Forceer herladen vanuit ons nep-bestand
    yield manager

    monkeypatch.undo()
    manager.reset()


def test_config_manager_is_singleton(config_env):
    assert ConfigManager() is config_env


def test_config_manager_load(config_env):
    """Test of de manager de configuratie correct laadt."""
    config = config_env.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["crawler"]["max_pages"] == 25


def test_config_manager_get_nested(config_env):
    """Test het ophalen van geneste waarden, met default voor ontbrekende sleutels."""
    assert config_env.get_nested("matcher.acceptance_threshold") == 0.7
    assert config_env.get_nested("matcher.missing", "fallback") == "fallback"
    assert config_env.get_nested("debug.level.deeper", 3) == 3


def test_config_manager_set_nested_casts_to_existing_type(config_env):
    """Nieuwe waarden krijgen het type van de waarde die ze vervangen."""
    assert config_env.set_nested("crawler.max_pages", "50")
    assert config_env.set_nested("crawler.show_progress", "yes")
    assert config_env.set_nested("matcher.acceptance_threshold", "0.8")
    assert config_env.set_nested("github.base_branch", "develop")

    assert config_env.get_nested("crawler.max_pages") == 50
    assert config_env.get_nested("crawler.show_progress") is True
    assert config_env.get_nested("matcher.acceptance_threshold") == 0.8
    assert config_env.get_nested("github.base_branch") == "develop"
    assert config_env.overrides["crawler.max_pages"] == 50


@pytest.mark.parametrize("key_path, value", [
    ("crawler.max_pages", "many"),
    ("crawler.show_progress", "maybe"),
    ("debug.level.deeper", "x"),
])
def test_config_manager_set_nested_rejects_bad_values(config_env, key_path, value):
    """Een waarde die niet past laat de configuratie ongemoeid."""
    before = config_env.snapshot()
    assert config_env.set_nested(key_path, value) is False
    assert config_env.get_all() == before
    assert config_env.overrides == {}


def test_apply_overrides_returns_rejected_assignments(config_env):
    """Alle geldige --set opdrachten worden toegepast; de ongeldige worden teruggegeven."""
    rejected = config_env.apply_overrides([
        "crawler.max_pages=40", "no-equals-sign", "=3", "crawler.show_progress=off",
    ])

    assert rejected == ["no-equals-sign", "=3"]
    assert config_env.get_nested("crawler.max_pages") == 40
    assert config_env.get_nested("crawler.show_progress") is False


def test_config_manager_reset_discards_overrides(config_env):
    config_env.set_nested("crawler.max_pages", 99)
    config_env.reset()
    assert config_env.get_nested("crawler.max_pages") == 25
    assert config_env.overrides == {}


def test_snapshot_is_independent(config_env):
    snapshot = config_env.snapshot()
    snapshot["crawler"]["max_pages"] = 1
    assert config_env.get_nested("crawler.max_pages") == 25


def test_invalid_settings_file_gives_empty_config(tmp_path, monkeypatch):
    package_root = tmp_path / "a11ypiper"
    package_root.mkdir()
    (package_root / "settings.json").write_text("[1, 2]")
    monkeypatch.setattr(PathUtils, "get_package_root", lambda: package_root)
    manager = ConfigManager()
    manager.reset()
    try:
        assert manager.get_all() == {}
    finally:
        monkeypatch.undo()
        manager.reset()


def test_missing_settings_file_gives_empty_config(tmp_path, monkeypatch):
    monkeypatch.setattr(PathUtils, "get_package_root", lambda: tmp_path / "nowhere")
    manager = ConfigManager()
    manager.reset()
    try:
        assert manager.get_all() == {}
    finally:
        monkeypatch.undo()
        manager.reset()


def test_shipped_settings_have_all_sections():
    """Het meegeleverde settings.json bevat alle secties die de pijplijn leest."""
    with open(PathUtils.get_settings_file(), encoding="utf-8") as f:
        settings = json.load(f)
    assert {"debug", "crawler", "session", "audit", "matcher", "fixer", "github"} <= set(settings)
    assert settings["matcher"]["acceptance_threshold"] == 0.7
