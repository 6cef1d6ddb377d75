"""Tests for index building and cross-reference linking"""

from conftest import NOW, T0, make_remote_item, make_remote_list
from todosync.indexes import index_local, index_remote, parse_source_id
from todosync.linker import link_by_source_id
from todosync.models import LocalItem, LocalList


def create_test_list(list_id, name="List", remote_id=None):
    return LocalList(id=list_id, name=name, remote_id=remote_id, created_at=T0, updated_at=T0)


def test_index_remote_skips_blank_ids():
    records = [
        make_remote_list("ext-1", "A", source_id="1"),
        make_remote_list("", "B", source_id="2"),
        make_remote_list("ext-3", "C", source_id="  "),
    ]

    by_id, by_source_id = index_remote(records)

    assert set(by_id) == {"ext-1", "ext-3"}
    assert set(by_source_id) == {"1", "2"}
    assert by_source_id["2"].name == "B"


def test_index_remote_last_duplicate_wins():
    first = make_remote_item("ri-1", "first")
    second = make_remote_item("ri-1", "second")

    by_id, _ = index_remote([first, second])

    assert by_id["ri-1"].description == "second"


def test_index_local_by_remote_id_and_id():
    linked = create_test_list(1, remote_id="ext-1")
    unlinked = create_test_list(2)
    unsaved = create_test_list(None, remote_id="ext-3")

    by_remote_id, by_id = index_local([linked, unlinked, unsaved])

    assert by_remote_id == {"ext-1": linked, "ext-3": unsaved}
    assert by_id == {1: linked, 2: unlinked}


def test_parse_source_id():
    assert parse_source_id("42") == 42
    assert parse_source_id(" 7 ") == 7
    assert parse_source_id("abc") is None
    assert parse_source_id("") is None
    assert parse_source_id(None) is None


def test_link_sets_remote_id_and_bumps_timestamp():
    todo_list = create_test_list(5)
    _, by_source_id = index_remote([make_remote_list("ext-5", "List", source_id="5")])

    linked = link_by_source_id([todo_list], by_source_id, now=NOW)

    assert linked == [todo_list]
    assert todo_list.remote_id == "ext-5"
    assert todo_list.updated_at == NOW


def test_link_without_touch_keeps_timestamp():
    item = LocalItem(id=3, name="Milk", created_at=T0, updated_at=T0)
    _, by_source_id = index_remote([make_remote_item("ri-3", "Milk", source_id="3")])

    link_by_source_id([item], by_source_id, now=NOW, touch=False)

    assert item.remote_id == "ri-3"
    assert item.updated_at == T0


def test_link_never_relinks_linked_records():
    todo_list = create_test_list(5, remote_id="ext-original")
    _, by_source_id = index_remote([make_remote_list("ext-other", "List", source_id="5")])

    assert link_by_source_id([todo_list], by_source_id, now=NOW) == []
    assert todo_list.remote_id == "ext-original"
    assert todo_list.updated_at == T0


def test_link_skips_remote_record_claimed_by_another_local():
    claimer = create_test_list(1, remote_id="ext-9")
    candidate = create_test_list(2)
    _, by_source_id = index_remote([make_remote_list("ext-9", "List", source_id="2")])

    linked = link_by_source_id([claimer, candidate], by_source_id, now=NOW)

    assert linked == []
    assert candidate.remote_id is None


def test_link_ignores_unsaved_records():
    unsaved = create_test_list(None)
    _, by_source_id = index_remote([make_remote_list("ext-1", "List", source_id="None")])

    assert link_by_source_id([unsaved], by_source_id, now=NOW) == []
