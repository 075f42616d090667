"""Tests for memos_store.store module."""

import sqlite3

import pytest

from conftest import recorded_versions
from memos_store.config import StoreConfig
from memos_store.enums import MigrationPath
from memos_store.errors import BackupSessionFailure, ConnectionAcquisitionFailure, ScriptReadFailure
from memos_store.logging_setup import setup_logging
from memos_store.store import Store


@pytest.fixture
def profile(temp_dir):
    return StoreConfig(mode="prod", data_dir=str(temp_dir), version="0.13.2")


class TestStore:
    """End-to-end tests for the Store facade."""

    def test_opens_derived_dsn(self, profile, temp_dir):
        with Store(profile) as store:
            assert store.dsn == str(temp_dir / "memos_prod.db")
        assert (temp_dir / "memos_prod.db").exists()

    def test_migrate_backup_vacuum(self, profile, temp_dir):
        target = temp_dir / "backups" / "memos.db"

        with Store(profile) as store:
            assert store.migrate() is MigrationPath.PROD_BOOTSTRAP
            store.conn.execute(
                "INSERT INTO user (id, username, password_hash, open_id) VALUES (1, 'alice', 'x', 'a')"
            )
            store.conn.execute("INSERT INTO memo (creator_id, content) VALUES (1, 'hello')")
            store.conn.execute("INSERT INTO memo (creator_id, content) VALUES (2, 'orphan')")

            store.backup_to(target)
            report = store.vacuum()

            assert report.deleted["memo"] == 1
            assert store.migrate() is MigrationPath.NOOP

        backup = sqlite3.connect(str(target))
        try:
            assert backup.execute("SELECT COUNT(*) FROM memo").fetchone()[0] == 2
            assert recorded_versions(backup) == ["0.13.2"]
        finally:
            backup.close()

    def test_demo_store(self, temp_dir):
        with Store(StoreConfig(mode="demo", data_dir=str(temp_dir))) as store:
            assert store.migrate() is MigrationPath.DEV_BOOTSTRAP
            assert store.conn.execute("SELECT COUNT(*) FROM user").fetchone()[0] == 3
        assert (temp_dir / "memos_demo.db").exists()

    def test_sqlite_supports_online_backup(self, profile):
        with Store(profile) as store:
            assert store.supports_online_backup

    def test_backup_without_support(self, profile, temp_dir):
        with Store(profile) as store:
            store._backup = None
            with pytest.raises(BackupSessionFailure):
                store.backup_to(temp_dir / "memos.db")

    def test_close(self, profile):
        store = Store(profile)
        store.close()

        with pytest.raises(sqlite3.ProgrammingError):
            store.conn.execute("SELECT 1")

    def test_unusable_data_dir(self, temp_dir):
        (temp_dir / "blocked").write_text("not a directory")
        profile = StoreConfig(data_dir=str(temp_dir / "blocked"))

        with pytest.raises(ConnectionAcquisitionFailure):
            Store(profile)

    def test_broken_catalog_opens_no_database(self, profile, temp_dir, monkeypatch):
        """Test that a catalog failure happens before the database file is opened."""
        def broken_catalog():
            raise ScriptReadFailure("migration directory not found")

        monkeypatch.setattr("memos_store.store.ScriptCatalog", broken_catalog)

        with pytest.raises(ScriptReadFailure):
            Store(profile)

        assert not (temp_dir / "memos_prod.db").exists()


class TestStoreLogging:
    """Tests for profile-driven logging."""

    def test_profile_log_settings_applied(self, temp_dir, isolated_log_file):
        log_file = temp_dir / "logs" / "store.log"
        profile = StoreConfig(
            data_dir=str(temp_dir), version="0.13.2", log_path=str(log_file), debug_logging=True
        )
        try:
            with Store(profile) as store:
                store.migrate()
        finally:
            # Removing the profile sink flushes and closes it
            setup_logging(str(isolated_log_file), debug=True)

        text = log_file.read_text(encoding="utf-8")
        assert "Opened prod database" in text
        assert "Migrator.migrate took" in text

    def test_no_log_settings_leaves_logging_alone(self, profile, temp_dir, isolated_log_file):
        with Store(profile):
            pass

        assert not list(temp_dir.glob("**/*.log"))
