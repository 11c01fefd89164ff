"""Tests for challenges endpoints."""

import json
from datetime import datetime, timedelta, timezone

import pytest

CHALLENGE_RESPONSE_KEYS = [
    "id", "name", "description", "creator_id", "start_date", "end_date",
    "join_by_date", "participants", "participant_limit", "is_active", "is_archived",
]


def _future(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _past(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


@pytest.fixture
def seed_users(fake_supabase):
    fake_supabase.seed(
        "users",
        {"id": "user-a", "email": "a@example.com", "name": "Alice"},
        {"id": "user-b", "email": "b@example.com", "name": "Bob"},
        {"id": "user-c", "email": "c@example.com", "name": None},
    )


def test_create_challenge(client, api_base):
    """POST /challenges creates a challenge with the creator on the roster."""
    r = client.post(
        f"{api_base}/challenges/",
        json={
            "name": "Spring Cut",
            "description": "Lose weight together before summer",
            "end_date": _future(30),
            "join_by_date": _future(3),
        },
    )
    assert r.status_code == 201
    data = r.json()
    for key in CHALLENGE_RESPONSE_KEYS:
        assert key in data, f"Missing key: {key}"
    assert data["participants"] == ["user-a"]
    assert data["creator_id"] == "user-a"
    assert data["participant_limit"] == 10
    assert data["is_active"] is True
    assert data["is_archived"] is False


def test_create_challenge_reports_all_errors(client, api_base):
    r = client.post(
        f"{api_base}/challenges/",
        json={
            "name": "ab",
            "description": "short",
            "end_date": _future(2),
            "join_by_date": _future(5),
            "participant_limit": 50,
        },
    )
    assert r.status_code == 400
    codes = {e["code"] for e in r.json()["detail"]["errors"]}
    assert codes == {
        "INVALID_NAME_LENGTH",
        "INVALID_DESCRIPTION_LENGTH",
        "END_DATE_BEFORE_JOIN_DATE",
        "INVALID_PARTICIPANT_LIMIT",
    }


def test_get_challenge_includes_status_and_progress(client, api_base, seed_challenge):
    seed_challenge()
    r = client.get(f"{api_base}/challenges/c1")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "active"
    assert data["progress"]["total_days"] == 30
    assert data["progress"]["days_elapsed"] == 5


def test_get_challenge_404(client, api_base):
    r = client.get(f"{api_base}/challenges/missing")
    assert r.status_code == 404


def test_get_challenge_requires_membership(client, api_base, seed_challenge):
    seed_challenge(creator_id="user-b", participants=["user-b"])
    r = client.get(f"{api_base}/challenges/c1")
    assert r.status_code == 403


def test_list_my_challenges_with_filters(client, api_base, seed_challenge):
    seed_challenge()
    seed_challenge(id="c2", name="Winter Shred", end_date=_past(1), start_date=_past(40))
    seed_challenge(id="c3", name="Other people", creator_id="user-b", participants=["user-b"])

    r = client.get(f"{api_base}/challenges/")
    assert r.status_code == 200
    assert {c["id"] for c in r.json()} == {"c1", "c2"}

    r = client.get(f"{api_base}/challenges/", params={"status": "completed"})
    assert [c["id"] for c in r.json()] == ["c2"]
    assert r.json()[0]["status"] == "completed"

    r = client.get(f"{api_base}/challenges/", params={"search": "spring"})
    assert [c["id"] for c in r.json()] == ["c1"]


def test_join_challenge(client, api_base, seed_challenge):
    seed_challenge(creator_id="user-b", participants=["user-b"])
    r = client.post(f"{api_base}/challenges/c1/join")
    assert r.status_code == 200
    assert r.json()["participants"] == ["user-b", "user-a"]


def test_join_twice_conflicts(client, api_base, seed_challenge):
    seed_challenge()
    r = client.post(f"{api_base}/challenges/c1/join")
    assert r.status_code == 409


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"join_by_date": _past(1)}, "JOIN_DEADLINE_PASSED"),
        ({"is_archived": True}, "CHALLENGE_ARCHIVED"),
        ({"is_active": False}, "CHALLENGE_INACTIVE"),
        ({"participant_limit": 1}, "PARTICIPANT_LIMIT_REACHED"),
    ],
)
def test_join_rejections(client, api_base, seed_challenge, overrides, code):
    seed_challenge(creator_id="user-b", participants=["user-b"], **overrides)
    r = client.post(f"{api_base}/challenges/c1/join")
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["code"] == code


def test_update_challenge(client, api_base, seed_challenge):
    seed_challenge(participants=["user-a", "user-b", "user-c"])

    r = client.put(f"{api_base}/challenges/c1", json={"name": "Renamed cut"})
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed cut"

    r = client.put(f"{api_base}/challenges/c1", json={"participant_limit": 2})
    assert r.status_code == 400


def test_update_requires_creator(client, api_base, seed_challenge):
    seed_challenge(creator_id="user-b", participants=["user-b", "user-a"])
    r = client.put(f"{api_base}/challenges/c1", json={"name": "Mine now"})
    assert r.status_code == 403


def test_update_after_join_deadline_only_allows_description(client, api_base, seed_challenge):
    seed_challenge(join_by_date=_past(1))

    r = client.put(
        f"{api_base}/challenges/c1", json={"name": "Renamed late", "participant_limit": 5}
    )
    assert r.status_code == 400
    error = r.json()["detail"]["errors"][0]
    assert error["code"] == "CHALLENGE_STARTED"
    assert "name, participant_limit" in error["message"]

    r = client.put(f"{api_base}/challenges/c1", json={"description": "Keep going, everyone"})
    assert r.status_code == 200
    assert r.json()["description"] == "Keep going, everyone"
    assert r.json()["name"] == "Spring Cut"


def test_roster_changes_refresh_the_leaderboard(client, api_base, seed_challenge, no_broker):
    seed_challenge(creator_id="user-b", participants=["user-b"])

    assert client.post(f"{api_base}/challenges/c1/join").status_code == 200
    no_broker.delay.assert_called_once_with("c1")


def test_archive_and_unarchive(client, api_base, seed_challenge):
    seed_challenge()

    r = client.post(f"{api_base}/challenges/c1/archive")
    assert r.status_code == 200
    assert r.json()["is_archived"] is True

    r = client.post(f"{api_base}/challenges/c1/unarchive")
    assert r.status_code == 200
    assert r.json()["is_archived"] is False


def test_archive_requires_creator(client, api_base, seed_challenge):
    seed_challenge(creator_id="user-b", participants=["user-b", "user-a"])
    r = client.post(f"{api_base}/challenges/c1/archive")
    assert r.status_code == 403


def test_delete_challenge(client, api_base, seed_challenge, fake_supabase):
    seed_challenge()
    r = client.delete(f"{api_base}/challenges/c1")
    assert r.status_code == 200
    assert fake_supabase.tables["challenges"] == []


def test_delete_blocked_by_other_participants(client, api_base, seed_challenge):
    seed_challenge(participants=["user-a", "user-b"])
    r = client.delete(f"{api_base}/challenges/c1")
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["code"] == "HAS_PARTICIPANTS"


def test_delete_blocked_after_join_deadline(client, api_base, seed_challenge):
    seed_challenge(join_by_date=_past(1))
    r = client.delete(f"{api_base}/challenges/c1")
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["code"] == "CHALLENGE_STARTED"


def test_participants_are_ranked(client, api_base, seed_challenge, seed_users, fake_supabase):
    seed_challenge(participants=["user-a", "user-b", "user-c", "ghost"])
    fake_supabase.seed(
        "weight_logs",
        {"id": "l1", "user_id": "user-b", "challenge_id": "c1", "weight": 90.0, "logged_at": _past(4)},
        {"id": "l2", "user_id": "user-b", "challenge_id": "c1", "weight": 86.0, "logged_at": _past(1)},
        {"id": "l3", "user_id": "user-a", "challenge_id": "c1", "weight": 70.0, "logged_at": _past(2)},
        {"id": "l4", "user_id": "outsider", "challenge_id": "c1", "weight": 99.0, "logged_at": _past(2)},
    )

    r = client.get(f"{api_base}/challenges/c1/participants")
    assert r.status_code == 200
    data = r.json()
    assert data["count"] == 4

    ranked = data["participants"]
    assert [p["user"]["id"] for p in ranked] == ["user-b", "user-a", "user-c", "ghost"]
    assert [p["rank"] for p in ranked] == [1, 2, 3, 4]
    assert ranked[0]["weight_loss"] == pytest.approx(4.0)
    assert ranked[1]["weight_loss"] == 0
    assert ranked[2]["weight_loss"] is None
    assert ranked[3]["user"]["email"] == "Unknown User"
    assert ranked[3]["user"]["name"] is None


def test_dashboard(client, api_base, seed_challenge, seed_users, fake_supabase):
    seed_challenge(participants=["user-a", "user-b", "user-c"])
    fake_supabase.seed(
        "weight_logs",
        {"id": "l1", "user_id": "user-a", "challenge_id": "c1", "weight": 90.0, "logged_at": _past(4)},
        {"id": "l2", "user_id": "user-a", "challenge_id": "c1", "weight": 85.0, "logged_at": _past(1)},
        {"id": "l3", "user_id": "user-b", "challenge_id": "c1", "weight": 70.0, "logged_at": _past(2)},
    )

    r = client.get(f"{api_base}/challenges/c1/dashboard")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "active"
    assert data["has_leader"] is True
    stats = data["stats"]
    assert stats["active_participants"] == 2
    assert stats["total_weight_loss"] == pytest.approx(5.0)
    assert stats["average_weight_loss"] == pytest.approx(5.0 / 3)
    assert stats["participation_rate"] == pytest.approx(200.0 / 3)
    assert stats["top_performer"]["user"]["id"] == "user-a"


def test_dashboard_without_logs_has_no_leader(client, api_base, seed_challenge, seed_users):
    seed_challenge(participants=["user-a", "user-b"])
    r = client.get(f"{api_base}/challenges/c1/dashboard")
    assert r.status_code == 200
    assert r.json()["has_leader"] is False


def test_leaderboard_is_cached(client, api_base, seed_challenge, seed_users, fake_redis):
    seed_challenge(participants=["user-a", "user-b"])

    first = client.get(f"{api_base}/challenges/c1/leaderboard")
    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert fake_redis.ttls["leaderboard:c1"] == 30

    cached = json.loads(fake_redis.values["leaderboard:c1"])
    assert [p["user"]["id"] for p in cached["participants"]] == ["user-a", "user-b"]
    assert "weight_logs" not in cached["participants"][0]

    second = client.get(f"{api_base}/challenges/c1/leaderboard")
    assert second.json()["cached"] is True
    assert second.json()["participants"] == first.json()["participants"]
