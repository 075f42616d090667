"""Tests for memos_store.catalog module."""

import pytest

from memos_store.catalog import ScriptCatalog, Script, split_statements
from memos_store.enums import SchemaKind
from memos_store.errors import ScriptReadFailure


class TestSplitStatements:
    """Tests for statement splitting."""

    def test_skips_blank_and_comment_only_segments(self):
        script = "CREATE TABLE t(x int); -- comment\n;  \nINSERT INTO t VALUES(1);"

        statements = split_statements(script)

        assert statements == ["CREATE TABLE t(x int)", "INSERT INTO t VALUES(1)"]

    def test_keeps_comments_attached_to_statements(self):
        statements = split_statements("-- create the table\nCREATE TABLE t(x int);")
        assert len(statements) == 1
        assert statements[0].endswith("CREATE TABLE t(x int)")

    def test_block_comment_only_segment_skipped(self):
        assert split_statements("/* nothing\n here */;SELECT 1;") == ["SELECT 1"]

    def test_no_trailing_semicolon(self):
        assert split_statements("SELECT 1;SELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_semicolon_in_line_comment_splits(self):
        """Test that a `;` inside a comment is treated as a separator."""
        statements = split_statements("SELECT 1; -- note; more\nSELECT 2;")
        assert statements == ["SELECT 1", "more\nSELECT 2"]

    def test_empty_script(self):
        assert split_statements("  \n\t") == []

    def test_script_statements_decode_utf8(self):
        script = Script("seed/x.sql", "INSERT INTO memo (content) VALUES ('👋');".encode("utf-8"))
        assert script.statements() == ["INSERT INTO memo (content) VALUES ('👋')"]

    def test_invalid_utf8_is_read_failure(self):
        script = Script("bad.sql", b"\xff\xfe;")
        with pytest.raises(ScriptReadFailure):
            script.statements()


class TestCatalogDiscovery:
    """Tests for bucket discovery and ordering."""

    def test_buckets_sorted_by_version_not_name(self, make_catalog):
        catalog = make_catalog(buckets={
            "0.10": {"00__a.sql": "SELECT 1;"},
            "0.9": {"00__a.sql": "SELECT 1;"},
            "1.0": {"00__a.sql": "SELECT 1;"},
            "0.11": {"00__a.sql": "SELECT 1;"},
        })

        assert catalog.minor_buckets() == ("0.9", "0.10", "0.11", "1.0")

    def test_ignores_non_minor_directories(self, make_catalog, temp_dir):
        catalog_root = temp_dir / "catalog"
        for name in ("0.12.1", "notes", "1.x"):
            (catalog_root / "migration" / "prod" / name).mkdir(parents=True)

        catalog = make_catalog(buckets={"0.12": {"00__a.sql": "SELECT 1;"}})

        assert catalog.minor_buckets() == ("0.12",)

    def test_scripts_sorted_by_file_name(self, make_catalog):
        catalog = make_catalog(buckets={"0.10": {
            "10__late.sql": "SELECT 10;",
            "02__middle.sql": "SELECT 2;",
            "01__early.sql": "SELECT 1;",
            "README.md": "not a script",
        }})

        names = [s.name for s in catalog.scripts_for("0.10")]

        assert names == [
            "migration/prod/0.10/01__early.sql",
            "migration/prod/0.10/02__middle.sql",
            "migration/prod/0.10/10__late.sql",
        ]

    def test_script_body_is_raw_bytes(self, make_catalog):
        catalog = make_catalog(buckets={"0.10": {"00__a.sql": "SELECT 1;"}})
        assert catalog.scripts_for("0.10")[0].body == b"SELECT 1;"

    def test_seed_scripts_sorted(self, make_catalog):
        catalog = make_catalog(seeds={"20__memo.sql": "SELECT 2;", "10__user.sql": "SELECT 1;"})
        assert [s.name for s in catalog.seed_scripts()] == ["seed/10__user.sql", "seed/20__memo.sql"]

    def test_no_seed_directory(self, make_catalog):
        assert make_catalog().seed_scripts() == ()

    def test_latest_full_schema_by_kind(self, make_catalog):
        catalog = make_catalog(prod_schema="SELECT 'prod';", dev_schema="SELECT 'dev';")
        assert catalog.latest_full_schema(SchemaKind.PROD) == b"SELECT 'prod';"
        assert catalog.latest_full_schema(SchemaKind.DEV) == b"SELECT 'dev';"

    def test_contents_fixed_at_load(self, make_catalog, temp_dir):
        """Test that later file edits do not leak into a loaded catalog."""
        catalog = make_catalog(buckets={"0.10": {"00__a.sql": "SELECT 1;"}})
        (temp_dir / "catalog" / "migration" / "prod" / "0.10" / "00__a.sql").write_text("SELECT 2;")

        assert catalog.scripts_for("0.10")[0].body == b"SELECT 1;"


class TestCatalogFailures:
    """Tests for ScriptReadFailure."""

    def test_missing_migration_tree(self, temp_dir):
        with pytest.raises(ScriptReadFailure):
            ScriptCatalog(temp_dir / "nowhere")

    def test_missing_latest_schema(self, make_catalog):
        catalog = make_catalog(prod_schema=None)
        with pytest.raises(ScriptReadFailure):
            catalog.latest_full_schema(SchemaKind.PROD)

    def test_unknown_bucket(self, make_catalog):
        catalog = make_catalog()
        with pytest.raises(ScriptReadFailure):
            catalog.scripts_for("0.99")


class TestBundledCatalog:
    """Tests for the scripts shipped with the package."""

    def test_buckets(self):
        assert ScriptCatalog().minor_buckets() == ("0.11", "0.12", "0.13")

    def test_every_bucket_has_scripts(self):
        catalog = ScriptCatalog()
        for minor in catalog.minor_buckets():
            scripts = catalog.scripts_for(minor)
            assert scripts
            assert [s.name for s in scripts] == sorted(s.name for s in scripts)
            assert all(s.statements() for s in scripts)

    def test_both_schemas_bundled(self):
        catalog = ScriptCatalog()
        for kind in SchemaKind:
            assert b"migration_history" in catalog.latest_full_schema(kind)

    def test_seed_scripts_bundled(self):
        names = [s.name for s in ScriptCatalog().seed_scripts()]
        assert names
        assert names == sorted(names)
