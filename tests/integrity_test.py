import asyncio
import math

from services.integrity_service import (
    MISSING_POST_ID,
    PARENT_GONE,
    POST_FORBIDDEN,
    POST_GONE,
    TOO_FEW_PARTICIPANTS,
)
from tests.fakes import build_services, new_id


def populated():
    svc = build_services()
    store = svc.store
    alice = store.add_user("Alice")
    bob = store.add_user("Bob")
    live_post = store.add_post(alice)
    healthy = store.add_conversation(live_post, [alice, bob])
    return svc, alice, bob, live_post, healthy


def test_deleted_post_makes_a_ghost():
    svc, alice, bob, live_post, healthy = populated()
    missing_post = new_id()
    ghost_id = svc.store.add_conversation(missing_post, [alice, bob])

    ghosts = asyncio.run(svc.integrity.detect_ghost_conversations())

    assert len(ghosts) == 1
    assert ghosts[0].conversation_id == ghost_id
    assert ghosts[0].post_id == missing_post
    assert ghosts[0].reason == POST_GONE


def test_ghost_reasons():
    svc, alice, bob, live_post, healthy = populated()
    store = svc.store
    no_post = store.add_conversation(None, [alice, bob])
    forbidden_post = store.add_post(alice)
    store.denied_posts.add(forbidden_post)
    forbidden = store.add_conversation(forbidden_post, [alice, bob])
    broken_post = store.add_post(alice)
    store.broken_posts.add(broken_post)
    broken = store.add_conversation(broken_post, [alice, bob])
    lonely = store.add_conversation(live_post, [alice])

    reasons = {g.conversation_id: g.reason for g in asyncio.run(svc.integrity.detect_ghost_conversations())}

    assert reasons == {
        no_post: MISSING_POST_ID,
        forbidden: POST_FORBIDDEN,
        broken: "Error checking post: connection reset",
        lonely: TOO_FEW_PARTICIPANTS,
    }


def test_missing_post_wins_over_participant_count():
    svc, alice, bob, live_post, healthy = populated()
    conversation_id = svc.store.add_conversation(new_id(), [alice])

    ghost = asyncio.run(svc.integrity.check_conversation(svc.store.conversations[conversation_id]))

    assert ghost.reason == POST_GONE


def test_healthy_store_has_no_ghosts():
    svc, alice, bob, live_post, healthy = populated()
    assert asyncio.run(svc.integrity.detect_ghost_conversations()) == []
    assert asyncio.run(svc.integrity.check_conversation(svc.store.conversations[healthy])) is None


def test_orphaned_messages_are_found():
    svc, alice, bob, live_post, healthy = populated()
    svc.store.add_message(healthy, alice)
    gone_parent = new_id()
    first = svc.store.add_message(gone_parent, alice)
    second = svc.store.add_message(gone_parent, bob)

    orphans = asyncio.run(svc.integrity.detect_orphaned_messages())

    assert sorted(o.message_id for o in orphans) == sorted([first, second])
    assert {o.conversation_id for o in orphans} == {gone_parent}
    assert {o.reason for o in orphans} == {PARENT_GONE}


def test_unreadable_parent_counts_as_gone():
    svc, alice, bob, live_post, healthy = populated()
    message_id = svc.store.add_message(healthy, alice)
    svc.store.denied_conversations.add(healthy)

    orphans = asyncio.run(svc.integrity.detect_orphaned_messages())

    assert [o.message_id for o in orphans] == [message_id]


def test_quick_check_estimate_stays_near_exact_count():
    svc, alice, bob, live_post, healthy = populated()
    svc.integrity.sample_size = 2
    svc.store.add_conversation(new_id(), [alice, bob])
    for _ in range(3):
        svc.store.add_conversation(live_post, [alice, bob])

    # fake sampling takes the first two: one healthy, one ghost
    result = asyncio.run(svc.integrity.quick_health_check())

    assert result.healthy is False
    assert result.total_conversations == 5
    assert result.ghost_count == 3
    assert result.issues

    full = asyncio.run(svc.integrity.comprehensive_health_check())
    assert full.ghost_count == 1
    margin = math.ceil(result.total_conversations / svc.integrity.sample_size)
    assert abs(result.ghost_count - full.ghost_count) <= margin


def test_quick_check_on_empty_store_is_healthy():
    svc = build_services()
    result = asyncio.run(svc.integrity.quick_health_check())
    assert result.healthy is True
    assert result.ghost_count == 0


def test_quick_check_reports_failure_as_unhealthy():
    svc, alice, bob, live_post, healthy = populated()

    async def broken_count():
        raise RuntimeError("store unavailable")

    svc.conversation_repo.count_conversations = broken_count
    result = asyncio.run(svc.integrity.quick_health_check())

    assert result.healthy is False
    assert "store unavailable" in result.issues[0]


def test_comprehensive_check_is_exact():
    svc, alice, bob, live_post, healthy = populated()
    for _ in range(3):
        svc.store.add_conversation(new_id(), [alice, bob])
    svc.store.add_message(new_id(), alice)

    result = asyncio.run(svc.integrity.comprehensive_health_check())

    assert result.healthy is False
    assert result.total_conversations == 4
    assert result.ghost_count == 3
    assert result.orphaned_messages == 1
    assert len(result.issues) == 2


def test_comprehensive_check_of_clean_store():
    svc, alice, bob, live_post, healthy = populated()
    result = asyncio.run(svc.integrity.comprehensive_health_check())
    assert result.healthy is True
    assert result.issues == []


def test_integrity_report_details():
    svc, alice, bob, live_post, healthy = populated()
    quiet = svc.store.add_conversation(live_post, [alice, bob])
    svc.store.conversations[healthy]["last_message"] = {"text": "hi", "sender_id": alice, "timestamp": None}
    ghost = svc.store.add_conversation(new_id(), [alice, bob])
    svc.store.add_message(new_id(), bob)

    report = asyncio.run(svc.integrity.validate_conversation_integrity())

    assert report.total_conversations == 3
    assert report.valid_conversations == 2
    assert report.ghost_conversations == 1
    assert report.orphaned_messages == 1
    assert f"{healthy}: valid" in report.details
    assert f"{quiet}: valid, no messages" in report.details
    assert f"{ghost}: ghost ({POST_GONE})" in report.details
