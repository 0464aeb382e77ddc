import logging

from fastapi import BackgroundTasks

from app.core.side_effects import (
    ActivityLogEntry, AssignmentNotification, Broadcast, SideEffectDispatcher,
)
from conftest import FakeSupabase, RecordingBroadcaster, store_error


def _entry():
    return ActivityLogEntry(
        type="incident", action="created", title="New incident created: Printer down",
        description="Incident created", user_id="u1", item_id="inc-1",
    )


def test_activity_entry_calls_log_activity_rpc():
    store = FakeSupabase()
    SideEffectDispatcher(store, RecordingBroadcaster()).dispatch(_entry())
    name, params = store.rpc_calls[0]
    assert name == "log_activity"
    assert params["p_type"] == "incident"
    assert params["p_item_id"] == "inc-1"
    assert params["p_user_id"] == "u1"


def test_failures_are_logged_and_swallowed(caplog):
    store = FakeSupabase()
    broadcaster = RecordingBroadcaster()
    broadcaster.fail = True
    store.fail("rpc", "log_activity", store_error("XX000", "audit down"))
    dispatcher = SideEffectDispatcher(store, broadcaster)

    with caplog.at_level(logging.WARNING, logger="app.core.side_effects"):
        dispatcher.dispatch(_entry())
        dispatcher.dispatch(Broadcast("incidents", "incident_created", {"entityId": "inc-1"}))

    assert store.rpc_calls == []
    messages = " ".join(record.getMessage() for record in caplog.records)
    assert "ActivityLogEntry" in messages and "Broadcast" in messages
    assert "inc-1" in messages


def test_assignment_notification_inserts_row_and_broadcasts():
    store = FakeSupabase()
    broadcaster = RecordingBroadcaster()
    SideEffectDispatcher(store, broadcaster).dispatch(AssignmentNotification(
        user_id="u2", title="New incident assigned", message="You have been assigned", type="incident",
        priority="high",
    ))
    [row] = store.rows("notifications")
    assert row["user_id"] == "u2"
    assert row["priority"] == "high"
    channel, event, payload = broadcaster.sent[0]
    assert (channel, event) == ("notifications", "new_notification")
    assert payload["entityId"] == row["id"]
    assert payload["userId"] == "u2"


def test_effects_wait_for_background_tasks():
    store = FakeSupabase()
    tasks = BackgroundTasks()
    SideEffectDispatcher(store, RecordingBroadcaster(), tasks).dispatch(_entry())
    assert store.rpc_calls == []
    assert len(tasks.tasks) == 1
