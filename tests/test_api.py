from __future__ import annotations

import uuid


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_swipe_requires_bearer_token(client) -> None:
    response = client.post("/swipes", json={"target_user_id": "x", "decision": "like"})

    assert response.status_code == 401


def test_swipe_rejects_bad_token(client) -> None:
    response = client.post(
        "/swipes",
        json={"target_user_id": "x", "decision": "like"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


def test_mutual_like_flow(client, make_user, auth_headers) -> None:
    a, b = make_user(), make_user()

    first = client.post("/swipes", json={"target_user_id": b, "decision": "like"}, headers=auth_headers(a))
    second = client.post("/swipes", json={"target_user_id": a, "decision": "like"}, headers=auth_headers(b))
    repeat = client.post("/swipes", json={"target_user_id": a, "decision": "like"}, headers=auth_headers(b))

    assert first.status_code == 201
    assert first.get_json()["data"] == {"recorded": True, "matched": False, "match_id": None}

    assert second.status_code == 201
    body = second.get_json()
    assert body["message"] == "It's a match!"
    assert body["data"]["matched"] is True
    match_id = body["data"]["match_id"]

    assert repeat.status_code == 409
    error = repeat.get_json()["error"]
    assert error["message"] == "You already rated this person"
    assert error["details"]["code"] == "already_swiped"

    matches = client.get("/matches", headers=auth_headers(a)).get_json()
    assert [m["id"] for m in matches["data"]] == [match_id]
    assert matches["data"][0]["other_user_id"] == b
    assert matches["pagination"] == {"limit": 50, "offset": 0, "count": 1}

    stats = client.get("/matches/stats", headers=auth_headers(b)).get_json()
    assert stats["data"] == {"sent_likes": 1, "received_likes": 1, "active_match_count": 1}


def test_swipe_validation_errors(client, make_user, auth_headers) -> None:
    a = make_user()

    missing = client.post("/swipes", json={"decision": "like"}, headers=auth_headers(a))
    bad_decision = client.post("/swipes", json={"target_user_id": "b", "decision": "maybe"}, headers=auth_headers(a))
    self_swipe = client.post("/swipes", json={"target_user_id": a, "decision": "like"}, headers=auth_headers(a))
    unknown = client.post("/swipes", json={"target_user_id": "ghost", "decision": "like"}, headers=auth_headers(a))

    assert missing.status_code == 400
    assert bad_decision.status_code == 400
    assert bad_decision.get_json()["error"]["details"]["code"] == "invalid_decision"
    assert self_swipe.status_code == 400
    assert self_swipe.get_json()["error"]["details"]["code"] == "self_swipe"
    assert unknown.status_code == 404


def test_daily_limit_is_reported(client, make_user, auth_headers) -> None:
    me = make_user()
    targets = [make_user() for _ in range(4)]

    statuses = [
        client.post("/swipes", json={"target_user_id": t, "decision": "like"}, headers=auth_headers(me)).status_code
        for t in targets
    ]

    assert statuses == [201, 201, 201, 429]


def test_unmatch_and_report(client, engine, make_user, auth_headers) -> None:
    a, b, c = make_user(), make_user(), make_user()
    engine.submit_swipe(a, b, "like")
    ab = engine.submit_swipe(b, a, "like").match_id
    engine.submit_swipe(a, c, "like")
    ac = engine.submit_swipe(c, a, "like").match_id

    outsider = client.post(f"/matches/{ab}/unmatch", headers=auth_headers(c))
    unmatched = client.post(f"/matches/{ab}/unmatch", headers=auth_headers(a))
    again = client.post(f"/matches/{ab}/unmatch", headers=auth_headers(b))
    reported = client.post(f"/matches/{ac}/report", headers=auth_headers(c))
    missing = client.post(f"/matches/{uuid.uuid4()}/unmatch", headers=auth_headers(a))

    assert outsider.status_code == 403
    assert unmatched.status_code == 200
    assert unmatched.get_json()["data"]["status"] == "unmatched"
    assert again.status_code == 409
    assert reported.status_code == 200
    assert reported.get_json()["data"]["other_user_id"] == a
    assert missing.status_code == 404

    matches = client.get("/matches", headers=auth_headers(a)).get_json()
    assert matches["data"] == []


def test_likes_listing(client, engine, make_user, auth_headers) -> None:
    a, b = make_user(), make_user()
    engine.submit_swipe(b, a, "super_like", message="hello")

    received = client.get("/likes/received", headers=auth_headers(a)).get_json()["data"]
    sent = client.get("/likes/sent", headers=auth_headers(b)).get_json()["data"]
    future = client.get(
        "/likes/received?since=2999-01-01T00:00:00", headers=auth_headers(a)
    ).get_json()["data"]
    bad = client.get("/likes/received?since=yesterday", headers=auth_headers(a))

    assert received["total"] == 1
    assert received["likes"][0]["from_user_id"] == b
    assert received["likes"][0]["is_super_like"] is True
    assert received["likes"][0]["message"] == "hello"
    assert sent["total"] == 1
    assert future["total"] == 0
    assert bad.status_code == 400


def test_swipe_message_must_be_text(client, make_user, auth_headers) -> None:
    a, b = make_user(), make_user()

    numeric = client.post(
        "/swipes", json={"target_user_id": b, "decision": "super_like", "message": 42}, headers=auth_headers(a)
    )
    too_long = client.post(
        "/swipes", json={"target_user_id": b, "decision": "super_like", "message": "x" * 501}, headers=auth_headers(a)
    )

    assert numeric.status_code == 400
    assert too_long.status_code == 400
    assert client.get("/likes/sent", headers=auth_headers(a)).get_json()["data"]["total"] == 0
