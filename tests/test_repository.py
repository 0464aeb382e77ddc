import pytest

from app.core.errors import Conflict, DeleteFailed, InsertFailed, NotFound, QueryFailed, ValidationError
from app.core.repository import EntityRepository, ListQuery, ensure_reference_exists, find_one
from conftest import FakeSupabase, store_error


def _repo(store):
    return EntityRepository(store, "incidents", "incidents_with_times", label="Incident")


def _seed_incidents(store, count):
    for n in range(1, count + 1):
        store.seed("incidents", {
            "id": f"inc-{n}",
            "title": f"Incident {n}",
            "description": "printer jam" if n % 2 else "network down",
            "status": "open" if n <= 3 else "closed",
            "created_at": f"2026-02-{n:02d}T00:00:00+00:00",
        })


def test_out_of_range_page_clamps_to_last_page():
    store = FakeSupabase()
    _seed_incidents(store, 5)
    page = _repo(store).list(ListQuery(), page=99999, limit=20)
    assert page.page == 1
    assert page.total == 5
    assert len(page.items) == 5
    assert page.has_more is False


def test_list_is_newest_first_and_reports_has_more():
    store = FakeSupabase()
    _seed_incidents(store, 5)
    first = _repo(store).list(ListQuery(), page=1, limit=2)
    assert [item["id"] for item in first.items] == ["inc-5", "inc-4"]
    assert first.has_more is True
    last = _repo(store).list(ListQuery(), page=3, limit=2)
    assert [item["id"] for item in last.items] == ["inc-1"]
    assert last.has_more is False


def test_empty_result_returns_page_one():
    store = FakeSupabase()
    page = _repo(store).list(ListQuery(search="nothing"), page=4, limit=10)
    assert page.page == 1
    assert page.items == []
    assert page.total == 0


def test_filters_and_search_combine():
    store = FakeSupabase()
    _seed_incidents(store, 5)
    page = _repo(store).list(ListQuery(equals={"status": "open", "priority": None}, search="PRINTER"))
    assert sorted(item["id"] for item in page.items) == ["inc-1", "inc-3"]


def test_date_range_filters_on_created_at():
    store = FakeSupabase()
    _seed_incidents(store, 5)
    page = _repo(store).list(ListQuery(
        created_from="2026-02-02T00:00:00+00:00",
        created_to="2026-02-03T23:59:59+00:00",
    ))
    assert sorted(item["id"] for item in page.items) == ["inc-2", "inc-3"]


def test_search_term_is_stripped_of_filter_syntax():
    store = FakeSupabase()
    _seed_incidents(store, 1)
    _repo(store).list(ListQuery(search="jam),status.eq.(closed"))
    expression = store.or_expressions[-1]
    assert "(" not in expression and ")" not in expression
    assert expression.count(",") == 1


def test_count_failure_is_query_failed():
    store = FakeSupabase()
    store.fail("incidents", "select", store_error("42P01", "relation does not exist"))
    with pytest.raises(QueryFailed) as exc:
        _repo(store).list(ListQuery())
    assert exc.value.detail == "relation does not exist"


def test_get_missing_row_is_not_found():
    with pytest.raises(NotFound):
        _repo(FakeSupabase()).get("missing")


def test_insert_unique_violation_is_conflict():
    store = FakeSupabase()
    store.fail("incidents", "insert", store_error("23505", "duplicate key"))
    with pytest.raises(Conflict):
        _repo(store).insert({"title": "x"})


def test_insert_other_failure_is_insert_failed():
    store = FakeSupabase()
    store.fail("incidents", "insert", store_error("23502", "null value"))
    with pytest.raises(InsertFailed):
        _repo(store).insert({"title": "x"})


def test_delete_blocked_by_reference_is_conflict():
    store = FakeSupabase()
    _seed_incidents(store, 1)
    store.fail("incidents", "delete", store_error("23503", "still referenced"))
    with pytest.raises(Conflict) as exc:
        _repo(store).delete("inc-1")
    assert exc.value.status_code == 409


def test_delete_other_failure_is_delete_failed():
    store = FakeSupabase()
    _seed_incidents(store, 1)
    store.fail("incidents", "delete", store_error("XX000", "boom"))
    with pytest.raises(DeleteFailed):
        _repo(store).delete("inc-1")


def test_delete_missing_row_is_not_found():
    with pytest.raises(NotFound):
        _repo(FakeSupabase()).delete("missing")


def test_conditional_update_detects_concurrent_change():
    store = FakeSupabase()
    store.seed("incidents", {"id": "inc-1", "title": "A", "last_modified_at": "2026-03-01T10:00:00+00:00"})
    repo = _repo(store)
    with pytest.raises(Conflict):
        repo.update("inc-1", {"title": "B"}, expected_last_modified_at="2026-03-01T09:00:00+00:00")
    assert store.find("incidents", "inc-1")["title"] == "A"

    row = repo.update("inc-1", {"title": "C"}, expected_last_modified_at="2026-03-01T10:00:00+00:00")
    assert row["title"] == "C"


def test_conditional_update_on_missing_row_is_not_found():
    with pytest.raises(NotFound):
        _repo(FakeSupabase()).update("missing", {"title": "B"}, expected_last_modified_at="2026-03-01")


def test_reference_helpers():
    store = FakeSupabase()
    store.seed("departments", {"id": 3, "name": "Operations", "short_name": "OPS"})
    ensure_reference_exists(store, "departments", 3, "Department does not exist")
    with pytest.raises(ValidationError) as exc:
        ensure_reference_exists(store, "departments", 4, "Department does not exist")
    assert exc.value.detail == "Department does not exist"
    assert find_one(store, "departments", {"short_name": "OPS"})["id"] == 3
    assert find_one(store, "departments", {"short_name": "HR"}) is None


def test_search_wildcards_match_literally():
    store = FakeSupabase()
    store.seed("incidents", {"id": "inc-1", "title": "Disk at 50% capacity", "created_at": "2026-02-01T00:00:00+00:00"})
    store.seed("incidents", {"id": "inc-2", "title": "Disk at 500 GB", "created_at": "2026-02-02T00:00:00+00:00"})
    store.seed("incidents", {"id": "inc-3", "title": "Queue a_b stuck", "created_at": "2026-02-03T00:00:00+00:00"})
    store.seed("incidents", {"id": "inc-4", "title": "Queue axb stuck", "created_at": "2026-02-04T00:00:00+00:00"})
    percent = _repo(store).list(ListQuery(search="50%"))
    assert store.or_expressions[-1].startswith("title.ilike.%50\\%%")
    assert [item["id"] for item in percent.items] == ["inc-1"]
    underscore = _repo(store).list(ListQuery(search="a_b"))
    assert [item["id"] for item in underscore.items] == ["inc-3"]
