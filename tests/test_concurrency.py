from concurrent.futures import ThreadPoolExecutor

from cartshare.domain.errors import AlreadyFinalized
from cartshare.services.shareable_cart_service import ShareableCartService

CALLERS = 12


def _run_parallel(session_factory, fn, count):
    def worker(i):
        session = session_factory()
        try:
            return fn(session, i)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=6) as pool:
        return list(pool.map(worker, range(count)))


def test_parallel_resolves_are_all_counted(share, db, session_factory, clock, reload):
    created = share()
    token = created["share_token"]
    db.rollback()

    def resolve(session, _i):
        return ShareableCartService(session, clock=clock).resolve(token)["access_count"]

    counts = _run_parallel(session_factory, resolve, CALLERS)

    assert len(counts) == CALLERS
    assert len(set(counts)) == CALLERS
    assert max(counts) == CALLERS

    record = reload(created["id"])
    assert record.access_count == CALLERS
    assert record.last_accessed_at is not None


def test_exactly_one_parallel_payment_wins(share, db, session_factory, clock, reload):
    created = share()
    token = created["share_token"]
    db.rollback()

    def pay(session, i):
        svc = ShareableCartService(session, clock=clock)
        try:
            cart = svc.complete_payment(token, paid_by_ref=f"user-{i}", order_ref=f"order-{i}")
        except AlreadyFinalized as e:
            return ("lost", e.status)
        return ("won", cart["paid_by_ref"], cart["order_ref"])

    results = _run_parallel(session_factory, pay, CALLERS)

    winners = [r for r in results if r[0] == "won"]
    losers = [r for r in results if r[0] == "lost"]
    assert len(winners) == 1
    assert len(losers) == CALLERS - 1
    assert all(status == "paid" for _, status in losers)

    _, paid_by, order = winners[0]
    record = reload(created["id"])
    assert record.status == "paid"
    assert record.paid_by_ref == paid_by
    assert record.order_ref == order
    assert paid_by.split("-")[1] == order.split("-")[1]
