from pathlib import Path

from package_tracker.io.paths import STORE_FILENAME, derive_store_paths


def test_explicit_store_path_gets_sibling_log(tmp_path: Path):
    store, log = derive_store_paths(tmp_path / "mine.json")
    assert store == tmp_path / "mine.json"
    assert log == tmp_path / "mine.log"


def test_default_store_path_uses_home_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("PACKAGE_TRACKER_HOME", str(tmp_path / "pt"))
    store, log = derive_store_paths()
    assert store == tmp_path / "pt" / STORE_FILENAME
    assert log.name == "store.log"


def test_default_store_path_falls_back_to_user_home(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("PACKAGE_TRACKER_HOME", raising=False)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    store, _ = derive_store_paths(None)
    assert store == tmp_path / ".package_tracker" / STORE_FILENAME
