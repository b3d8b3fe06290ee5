import asyncio

import pytest

from fakes import FakeDispatcher, FakeInvitations, FakeOrchestrator, FakePreferences, FakeTokens
from fanout.orchestrator import FanoutOrchestrator
from models.notifications import NotificationKind
from watchers.base import ChangeWatcher
from watchers.feed import Document, DocumentChange, Snapshot
from watchers.invitations import InvitationWatcher
from watchers.membership import MembershipWatcher


def _doc(doc_id, **data):
    return Document(id=doc_id, path=f"invitations/{doc_id}", data=data)


def _change(kind, doc):
    return Snapshot(documents=[doc], changes=[DocumentChange(kind, doc)])


def _ready(orchestrator):
    w = InvitationWatcher(orchestrator)
    w.apply(Snapshot())
    return w


def test_initial_snapshot_emits_nothing():
    w = InvitationWatcher(FakeOrchestrator())
    doc = _doc("i0", toUserId="u1", status="pending")
    assert w.apply(Snapshot(documents=[doc], changes=[DocumentChange("added", doc)])) == []
    assert w.initialized


def test_pending_invitation_produces_one_task():
    w = _ready(FakeOrchestrator())
    tasks = w.apply(_change("added", _doc("i1", toUserId="u1", itemName="Dinner List", status="pending", itemId="s1", itemType="shoplist")))
    assert len(tasks) == 1
    assert tasks[0].to_user_id == "u1"
    assert tasks[0].item_name == "Dinner List"


def test_missing_status_counts_as_pending():
    w = _ready(FakeOrchestrator())
    assert len(w.apply(_change("added", _doc("i1", toUserId="u1")))) == 1


def test_non_qualifying_invitations_are_skipped():
    w = _ready(FakeOrchestrator())
    assert w.apply(_change("modified", _doc("i2", toUserId="u1", status="accepted"))) == []
    assert w.apply(_change("added", _doc("i3", toUserId="u1", status="pending", notifiedAt="2026-01-01"))) == []
    assert w.apply(_change("added", _doc("i4", status="pending"))) == []
    assert w.apply(_change("removed", _doc("i5", toUserId="u1", status="pending"))) == []


def test_redelivered_event_is_suppressed_by_processed_set():
    w = _ready(FakeOrchestrator())
    doc = _doc("i1", toUserId="u1", status="pending")
    assert len(w.apply(_change("added", doc))) == 1
    assert w.apply(_change("modified", doc)) == []


def test_dinner_list_invitation_sends_once():
    dispatcher = FakeDispatcher()
    invitations = FakeInvitations()
    orch = FanoutOrchestrator(FakePreferences(), FakeTokens({"u1": ["t1", "t2"]}), invitations, dispatcher)
    w = _ready(orch)
    doc = _doc("i1", toUserId="u1", itemName="Dinner List", status="pending")

    async def run():
        w.on_snapshot(_change("added", doc))
        await w.drain()
        w.on_snapshot(_change("added", doc))
        await w.drain()

    asyncio.run(run())
    assert len(dispatcher.sent) == 1
    tokens, message = dispatcher.sent[0]
    assert tokens == ["t1", "t2"]
    assert "Dinner List" in message.body
    assert message.data["invitationId"] == "i1"
    assert invitations.marked == ["i1"]


def test_marker_suppresses_after_restart():
    # A fresh watcher (new process) sees the stamped invitation modified later.
    orch = FakeOrchestrator()
    w = _ready(orch)
    stamped = _doc("i1", toUserId="u1", status="pending", notifiedAt="2026-10-19T00:00:00Z")
    assert w.apply(_change("modified", stamped)) == []


def test_handle_passes_invitation_id_and_kind():
    orch = FakeOrchestrator()
    w = _ready(orch)
    task = w.apply(_change("added", _doc("i9", toUserId="u3")))[0]
    asyncio.run(w.handle(task))
    recipient, kind, message, invitation_id = orch.calls[0]
    assert (recipient, kind, invitation_id) == ("u3", NotificationKind.INVITE, "i9")
    assert message.body == "You have a new invitation"


def test_task_failure_is_logged_not_raised(caplog):
    orch = FakeOrchestrator(fail_for={"u1"})
    w = _ready(orch)

    async def run():
        w.on_snapshot(_change("added", _doc("a", toUserId="u1")))
        w.on_snapshot(_change("added", _doc("b", toUserId="u2")))
        await w.drain()

    asyncio.run(run())
    assert [c[0] for c in orch.calls] == ["u2"]
    assert any(r.getMessage() == "handler_error" and r.levelname == "ERROR" for r in caplog.records)


def test_watcher_hooks_are_abstract():
    with pytest.raises(TypeError):
        ChangeWatcher(FakeOrchestrator())
    with pytest.raises(TypeError):
        MembershipWatcher(FakeOrchestrator())
