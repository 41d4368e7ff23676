"""Tests for the catalog service: loading, TTL reloads, and queries."""

import os
import tempfile
import threading
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import make_app, make_template, write_record
from hub.registry.catalog import CatalogService
from hub.registry.errors import RecordNotFoundError, RegistryInitError, ScanError
from hub.registry.models import RecordKind


def _catalog(tmpdir, clock=None, ttl=timedelta(minutes=60)) -> CatalogService:
    root = Path(tmpdir)
    (root / "templates").mkdir(exist_ok=True)
    return CatalogService(root / "templates", root / "apps", cache_ttl=ttl, clock=clock)


def _seed_search_fixtures(tmpdir):
    tpl = Path(tmpdir) / "templates"
    write_record(tpl, "jellyfin.json", make_template(
        "jellyfin", name="Media Server", description="Stream video", category="video"))
    write_record(tpl, "photos.json", make_template(
        "photos", name="Photo Library", description="A great media tool", category="photos"))
    write_record(tpl, "backup.json", make_template(
        "backup", name="Backup", description="daily backups", category="storage"))


# ── Initialization ───────────────────────────────────────────────────


def test_initialize_loads_both_kinds():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "templates", "nextcloud.json", make_template("nextcloud"))
        write_record(Path(tmpdir) / "apps", "tool.json", make_app("tool"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert [m.id for m in catalog.list_templates()] == ["nextcloud"]
        assert [m.id for m in catalog.list_apps()] == ["tool"]


def test_initialize_fails_without_templates_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        catalog = CatalogService(Path(tmpdir) / "nope", Path(tmpdir) / "apps")
        with pytest.raises(RegistryInitError):
            catalog.initialize()


def test_missing_apps_dir_lists_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "templates", "nextcloud.json", make_template("nextcloud"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert catalog.list_apps() == []
        assert catalog.get_app_categories() == []
        assert catalog.search_apps("anything") == []


def test_initialize_fails_when_templates_dir_unlistable(tmp_path, monkeypatch):
    write_record(tmp_path / "templates", "nextcloud.json", make_template("nextcloud"))
    catalog = _catalog(tmp_path)
    real_scandir = os.scandir

    def denied(path="."):
        if path == str(tmp_path / "templates"):
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", denied)
    with pytest.raises(RegistryInitError):
        catalog.initialize()


def test_inaccessible_apps_dir_lists_empty(tmp_path, monkeypatch):
    write_record(tmp_path / "templates", "nextcloud.json", make_template("nextcloud"))
    write_record(tmp_path / "apps", "tool.json", make_app("tool"))
    catalog = _catalog(tmp_path)
    real_is_dir = Path.is_dir

    def denied(self, *args, **kwargs):
        if self == tmp_path / "apps":
            raise PermissionError(13, "Permission denied", str(self))
        return real_is_dir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "is_dir", denied)
    catalog.initialize()

    assert [m.id for m in catalog.list_templates()] == ["nextcloud"]
    assert catalog.list_apps() == []


# ── Queries ──────────────────────────────────────────────────────────


def test_get_returns_file_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        data = make_template("nextcloud")
        write_record(Path(tmpdir) / "templates", "nextcloud.json", data)
        app_data = make_app("tool")
        write_record(Path(tmpdir) / "apps", "tool.json", app_data)
        catalog = _catalog(tmpdir)
        catalog.initialize()

        tpl = catalog.get_template("nextcloud").to_dict()
        for key in ("id", "name", "description", "icon", "category", "author",
                    "version", "compose", "variables", "created_at", "updated_at", "tags"):
            assert tpl[key] == data[key], key

        app = catalog.get_app("tool").to_dict()
        for key, value in app_data.items():
            assert app[key] == value, key


def test_get_nonexistent_raises_not_found():
    with tempfile.TemporaryDirectory() as tmpdir:
        catalog = _catalog(tmpdir)
        catalog.initialize()

        with pytest.raises(RecordNotFoundError) as exc:
            catalog.get_template("nonexistent")
        assert str(exc.value) == "template not found: nonexistent"

        with pytest.raises(RecordNotFoundError) as exc:
            catalog.get_app("nonexistent")
        assert exc.value.kind == "app"
        assert exc.value.record_id == "nonexistent"


def test_invalid_records_never_returned():
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        write_record(tpl, "noname.json", make_template("noname", name=""))
        write_record(tpl, "noid.json", make_template("", name="Orphan"))
        write_record(tpl, "ok.json", make_template("ok"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert [m.id for m in catalog.list_templates()] == ["ok"]
        assert catalog.search_templates("orphan") == []
        with pytest.raises(RecordNotFoundError):
            catalog.get_template("noname")


def test_duplicate_ids_resolve_to_one_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        write_record(tpl, "a.json", make_template("dup", description="first"))
        write_record(tpl, "b.json", make_template("dup", description="second"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert len(catalog.list_templates()) == 1
        assert catalog.get_template("dup").description == "second"


def test_categories_are_distinct():
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        write_record(tpl, "a.json", make_template("a", category="media"))
        write_record(tpl, "b.json", make_template("b", category="media"))
        write_record(tpl, "c.json", make_template("c", category="dev"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        categories = catalog.get_template_categories()
        assert sorted(categories) == ["dev", "media"]
        assert len(categories) == 2


def test_search_matches_name_description_and_category():
    with tempfile.TemporaryDirectory() as tmpdir:
        _seed_search_fixtures(tmpdir)
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert {m.id for m in catalog.search_templates("media")} == {"jellyfin", "photos"}
        assert {m.id for m in catalog.search_templates("MEDIA")} == {"jellyfin", "photos"}
        assert {m.id for m in catalog.search_templates("storage")} == {"backup"}
        assert catalog.search_templates("kubernetes") == []


def test_search_returns_metadata_only():
    with tempfile.TemporaryDirectory() as tmpdir:
        _seed_search_fixtures(tmpdir)
        catalog = _catalog(tmpdir)
        catalog.initialize()

        (meta,) = catalog.search_templates("backup")
        assert meta.name == "Backup"
        assert not hasattr(meta, "compose")


def test_generic_queries_match_kind_specific_ones():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "apps", "tool.json", make_app("tool"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        assert catalog.get(RecordKind.APP, "tool") == catalog.get_app("tool")
        assert catalog.list_metadata(RecordKind.APP) == catalog.list_apps()
        assert catalog.list_categories(RecordKind.APP) == ["storage"]


# ── Reload policy ────────────────────────────────────────────────────


def test_scan_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        _seed_search_fixtures(tmpdir)
        catalog = _catalog(tmpdir)
        first = catalog.refresh(RecordKind.TEMPLATE).records
        second = catalog.refresh(RecordKind.TEMPLATE).records
        assert first == second
        assert first is not second


def test_first_query_triggers_load(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "templates", "a.json", make_template("a"))
        catalog = _catalog(tmpdir, clock=clock)

        assert catalog.store(RecordKind.TEMPLATE).last_load_time() is None
        assert [m.id for m in catalog.list_templates()] == ["a"]
        assert catalog.store(RecordKind.TEMPLATE).last_load_time() == clock.now


def test_ttl_controls_rescans(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        write_record(tpl, "a.json", make_template("a"))
        catalog = _catalog(tmpdir, clock=clock, ttl=timedelta(minutes=60))
        store = catalog.store(RecordKind.TEMPLATE)

        catalog.list_templates()
        t0 = store.last_load_time()

        # Within the TTL: edits on disk are not seen yet.
        write_record(tpl, "b.json", make_template("b"))
        clock.advance(minutes=30)
        assert [m.id for m in catalog.list_templates()] == ["a"]
        assert store.last_load_time() == t0

        # Exactly at the TTL is still fresh.
        clock.advance(minutes=30)
        assert catalog.reload_if_stale(RecordKind.TEMPLATE) is False

        # Past the TTL the next query rescans.
        clock.advance(seconds=1)
        assert [m.id for m in catalog.list_templates()] == ["a", "b"]
        assert store.last_load_time() == clock.now


def test_kinds_reload_independently(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        catalog = _catalog(tmpdir, clock=clock)
        catalog.list_templates()
        clock.advance(minutes=90)
        catalog.list_apps()

        assert catalog.is_stale(RecordKind.TEMPLATE)
        assert not catalog.is_stale(RecordKind.APP)


def test_failed_reload_keeps_previous_snapshot(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        write_record(tpl, "a.json", make_template("a"))
        catalog = _catalog(tmpdir, clock=clock)
        catalog.initialize()

        (tpl / "a.json").unlink()
        tpl.rmdir()
        clock.advance(hours=2)

        with pytest.raises(ScanError):
            catalog.list_templates()
        snapshot = catalog.store(RecordKind.TEMPLATE).current_snapshot()
        assert list(snapshot.records) == ["a"]


def test_apps_dir_appearing_later_is_picked_up(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        catalog = _catalog(tmpdir, clock=clock)
        catalog.initialize()
        assert catalog.list_apps() == []

        write_record(Path(tmpdir) / "apps", "tool.json", make_app("tool"))
        clock.advance(hours=2)
        assert [m.id for m in catalog.list_apps()] == ["tool"]


def test_stats():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "templates", "a.json", make_template("a"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        stats = catalog.stats()
        assert stats["templates"]["count"] == 1
        assert stats["templates"]["categories"] == 1
        assert stats["templates"]["loaded_at"] is not None
        assert stats["apps"]["count"] == 0


# ── Concurrency ──────────────────────────────────────────────────────


def test_concurrent_stale_queries_coalesce_into_one_scan(clock, monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        write_record(Path(tmpdir) / "templates", "a.json", make_template("a"))
        catalog = _catalog(tmpdir, clock=clock)

        import hub.registry.catalog as catalog_module

        scans = []
        real_load = catalog_module.load_records

        def counting_load(*args, **kwargs):
            scans.append(args[1])
            return real_load(*args, **kwargs)

        monkeypatch.setattr(catalog_module, "load_records", counting_load)

        barrier = threading.Barrier(8)

        def query():
            barrier.wait()
            catalog.list_templates()

        threads = [threading.Thread(target=query) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert scans == [RecordKind.TEMPLATE]


def test_queries_during_rescans_see_complete_snapshots():
    with tempfile.TemporaryDirectory() as tmpdir:
        tpl = Path(tmpdir) / "templates"
        for i in range(25):
            write_record(tpl, f"t{i:02}.json", make_template(f"t{i:02}"))
        catalog = _catalog(tmpdir)
        catalog.initialize()

        stop = threading.Event()
        sizes = []

        def reader():
            while not stop.is_set():
                sizes.append(len(catalog.list_templates()))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        for _ in range(20):
            catalog.refresh(RecordKind.TEMPLATE)
        stop.set()
        for t in readers:
            t.join()

        assert sizes
        assert set(sizes) == {25}
