import server


def test_reload_skips_when_mtime_unchanged(monkeypatch):
    monkeypatch.setattr(server, "_data_mtime", 100.0, raising=False)
    monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 100.0)

    called = {"count": 0}

    def fake_load_data(_path):
        called["count"] += 1
        return {}

    monkeypatch.setattr(server, "load_data", fake_load_data)

    changed = server._reload_data_if_changed()
    assert changed is False
    assert called["count"] == 0


def test_reload_swaps_catalog_when_mtime_advances(monkeypatch):
    old_data = {"catalog_codes": {"OLD100"}, "courses_df": "old_courses", "prereq_map": {"OLD100": []}}
    new_data = {"catalog_codes": {"NEW200"}, "courses_df": "new_courses", "prereq_map": {"NEW200": []}}

    monkeypatch.setattr(server, "_data", old_data, raising=False)
    monkeypatch.setattr(server, "_catalog", {"courses": {}, "catalog_codes": {"OLD100"}}, raising=False)
    monkeypatch.setattr(server, "_data_mtime", 100.0, raising=False)
    monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 200.0)
    monkeypatch.setattr(server, "load_data", lambda _path: new_data)
    monkeypatch.setattr(
        server, "build_catalog",
        lambda df, prereq_map: {"courses": {"NEW200": {"from": df}}, "catalog_codes": set(prereq_map)},
    )

    changed = server._reload_data_if_changed()
    assert changed is True
    assert server._data is new_data
    assert server._catalog["courses"] == {"NEW200": {"from": "new_courses"}}
    assert server._data_mtime == 200.0


def test_reload_failure_keeps_previous_catalog(monkeypatch):
    old_data = {"catalog_codes": {"OLD100"}, "courses_df": "old_courses", "prereq_map": {"OLD100": []}}
    old_catalog = {"courses": {}, "catalog_codes": {"OLD100"}}

    monkeypatch.setattr(server, "_data", old_data, raising=False)
    monkeypatch.setattr(server, "_catalog", old_catalog, raising=False)
    monkeypatch.setattr(server, "_data_mtime", 100.0, raising=False)
    monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 200.0)

    def boom(_path):
        raise RuntimeError("reload failed")

    monkeypatch.setattr(server, "load_data", boom)

    changed = server._reload_data_if_changed()
    assert changed is False
    assert server._data is old_data
    assert server._catalog is old_catalog
    assert server._data_mtime == 100.0


def test_force_reload_ignores_mtime(monkeypatch):
    new_data = {"catalog_codes": set(), "courses_df": "df", "prereq_map": {}}

    monkeypatch.setattr(server, "_data", {}, raising=False)
    monkeypatch.setattr(server, "_catalog", {}, raising=False)
    monkeypatch.setattr(server, "_data_mtime", 100.0, raising=False)
    monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 100.0)
    monkeypatch.setattr(server, "load_data", lambda _path: new_data)
    monkeypatch.setattr(server, "build_catalog", lambda _df, _map: {"courses": {}, "catalog_codes": set()})

    assert server._reload_data_if_changed(force=True) is True
    assert server._data is new_data
