from __future__ import annotations

import threading
import time

from sqlalchemy import func, select

from models import Like, Match, Swipe, db
from utils.errors import AlreadySwiped
from utils.locks import pair_lock_key


def _run_concurrently(app, calls):
    """Run each (callable, args) in its own thread and app context, starting together"""
    db.session.close()
    barrier = threading.Barrier(len(calls))
    outcomes: list = [None] * len(calls)

    def worker(index, fn, args):
        with app.app_context():
            barrier.wait()
            try:
                outcomes[index] = fn(*args)
            except Exception as exc:
                outcomes[index] = exc

    threads = [
        threading.Thread(target=worker, args=(i, fn, args))
        for i, (fn, args) in enumerate(calls)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def _count(model, *criteria) -> int:
    stmt = select(func.count(model.id))
    if criteria:
        stmt = stmt.where(*criteria)
    return db.session.execute(stmt).scalar_one()


def test_concurrent_duplicate_swipes_record_once(app, engine, make_user) -> None:
    a, b = make_user(), make_user()

    outcomes = _run_concurrently(app, [(engine.submit_swipe, (a, b, "like"))] * 5)

    recorded = [o for o in outcomes if not isinstance(o, Exception)]
    rejected = [o for o in outcomes if isinstance(o, Exception)]
    assert len(recorded) == 1
    assert all(isinstance(o, AlreadySwiped) for o in rejected)
    assert _count(Swipe, Swipe.from_user_id == a, Swipe.to_user_id == b) == 1
    assert _count(Like) == 1


def test_simultaneous_mutual_likes_create_exactly_one_match(app, engine, make_user) -> None:
    a, b = make_user(), make_user()

    outcomes = _run_concurrently(app, [
        (engine.submit_swipe, (a, b, "like")),
        (engine.submit_swipe, (b, a, "like")),
    ])

    assert not any(isinstance(o, Exception) for o in outcomes), outcomes
    assert all(o.recorded for o in outcomes)
    assert _count(Match) == 1

    match_id = str(db.session.scalars(select(Match.id)).one())
    matched = [o for o in outcomes if o.matched]
    assert len(matched) >= 1
    assert all(o.match_id == match_id for o in matched)


def test_many_pairs_converge_to_one_match_each(app, engine, make_user) -> None:
    users = [make_user() for _ in range(4)]
    calls = [
        (engine.submit_swipe, (u, v, "like"))
        for u in users[:2]
        for v in users[2:]
    ] + [
        (engine.submit_swipe, (v, u, "like"))
        for u in users[:2]
        for v in users[2:]
    ]

    outcomes = _run_concurrently(app, calls)

    assert not any(isinstance(o, Exception) for o in outcomes), outcomes
    assert _count(Match) == 4


def test_pending_pair_lock_does_not_delay_other_pairs(app, engine, make_user) -> None:
    a, b, c = make_user(), make_user(), make_user()
    engine.locks.acquire(pair_lock_key(a, b), hold_timeout=30)

    started = time.monotonic()
    result = engine.submit_swipe(a, c, "like")
    elapsed = time.monotonic() - started

    assert result.recorded
    assert elapsed < engine.locks.wait_timeout
    assert engine.locks.is_locked(pair_lock_key(a, b))
