import pytest

from xmtpbot.conversation import ConversationStore
from xmtpbot.sessions import SessionRegistry


def _msg(i: int) -> dict:
    return {"role": "user", "content": f"m{i}"}


def test_history_is_bounded_and_evicts_oldest_first():
    store = ConversationStore(SessionRegistry(), max_messages=10)

    for i in range(25):
        store.append("alice", _msg(i))
        assert len(store.get("alice")) <= 10

    assert [m["content"] for m in store.get("alice")] == [f"m{i}" for i in range(15, 25)]


def test_get_returns_snapshot():
    store = ConversationStore(SessionRegistry())
    store.append("alice", _msg(1))

    snapshot = store.get("alice")
    store.append("alice", _msg(2))

    assert len(snapshot) == 1
    assert isinstance(snapshot, tuple)


def test_reset_clears_only_that_user():
    store = ConversationStore(SessionRegistry())
    store.append("alice", _msg(1))
    store.append("bob", _msg(2))

    store.reset("alice")

    assert store.get("alice") == ()
    assert len(store.get("bob")) == 1


def test_build_prompt_prepends_system_prompt():
    store = ConversationStore(SessionRegistry())
    store.append("alice", _msg(1))

    prompt = store.build_prompt("alice", "be brief")

    assert prompt[0] == {"role": "system", "content": "be brief"}
    assert prompt[1]["content"] == "m1"


def test_build_prompt_skips_orphaned_tool_entries_at_head():
    store = ConversationStore(SessionRegistry(), max_messages=3)
    store.append("alice", {"role": "assistant", "content": None, "tool_calls": [{"id": "c1"}, {"id": "c2"}]})
    store.append("alice", {"role": "tool", "tool_call_id": "c1", "content": "a"})
    store.append("alice", {"role": "tool", "tool_call_id": "c2", "content": "b"})
    store.append("alice", {"role": "user", "content": "next"})

    prompt = store.build_prompt("alice", "sys")

    assert [m["role"] for m in prompt] == ["system", "user"]
    assert len(store.get("alice")) == 3


def test_max_messages_must_be_positive():
    with pytest.raises(ValueError):
        ConversationStore(SessionRegistry(), max_messages=0)
