# tests/test_concurrency.py
"""Tests for concurrent use of the registry."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from provenance import AssetStatus, InvalidStateError, RegistryService
from provenance.locks import KeyedLock

WORKERS = 16


def register(registry, creator_id, title="Piece"):
    return registry.register(
        title=title,
        description="",
        asset_type="CODE",
        creator_id=creator_id,
        content_hash=f"hash-{title}",
        metadata={"file_format": "PY", "file_size": 1},
    )


def holdings(registry, holders):
    return {h: sorted(registry.creators.list_holdings(h)) for h in holders}


@pytest.fixture
def registry():
    return RegistryService()


class TestKeyedLock:
    """Tests for KeyedLock."""

    def test_same_key_is_exclusive(self):
        locks = KeyedLock()
        inside = []
        overlaps = []

        def work():
            with locks.hold("k"):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(1)
                time.sleep(0.001)
                inside.pop()

        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(50):
                pool.submit(work)

        assert overlaps == []

    def test_disjoint_keys_run_in_parallel(self):
        locks = KeyedLock()
        first_in = threading.Event()
        release = threading.Event()

        def hold_a():
            with locks.hold("a"):
                first_in.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=hold_a)
        thread.start()
        first_in.wait(timeout=5)

        # "a" is still held by the other thread
        acquired = []
        with locks.hold("b"):
            acquired.append(True)
        release.set()
        thread.join()
        assert acquired == [True]

    def test_opposite_order_does_not_deadlock(self):
        locks = KeyedLock()

        def forward():
            for _ in range(200):
                with locks.hold("x", "y"):
                    pass

        def backward():
            for _ in range(200):
                with locks.hold("y", "x"):
                    pass

        threads = [threading.Thread(target=f) for f in (forward, backward)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert not any(t.is_alive() for t in threads)

    def test_released_keys_are_dropped(self):
        locks = KeyedLock()
        with locks.hold("a", "b"):
            assert sorted(locks.active_keys()) == ["a", "b"]
        assert list(locks.active_keys()) == []

    def test_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")
        with locks.hold("a"):
            pass


class TestConcurrentRegistry:
    """The registry stays consistent under concurrent calls."""

    def test_disjoint_transfers_match_sequential_result(self, registry):
        owners = [f"creator-{i}" for i in range(WORKERS)]
        recipients = [f"recipient-{i}" for i in range(WORKERS)]
        assets = [register(registry, owner, title=owner) for owner in owners]

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(
                lambda pair: registry.transfer_asset(pair[0].id, pair[0].creator_id, pair[1], "FULL"),
                zip(assets, recipients),
            ))

        assert all(r.status is AssetStatus.TRANSFERRED for r in results)
        for asset, recipient in zip(assets, recipients):
            assert registry.creators.list_holdings(asset.creator_id) == []
            assert registry.creators.list_holdings(recipient) == [asset.id]
        assert registry.audit() == []

    def test_transfers_into_one_holder(self, registry):
        """Many FULL transfers to the same recipient all land in its index entry."""
        assets = [register(registry, f"creator-{i}", title=str(i)) for i in range(WORKERS)]

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            list(pool.map(
                lambda a: registry.transfer_asset(a.id, a.creator_id, "collector", "FULL"),
                assets,
            ))

        assert sorted(registry.creators.list_holdings("collector")) == sorted(a.id for a in assets)
        assert registry.audit() == []

    def test_same_asset_transfers_are_linearized(self, registry):
        asset = register(registry, "alice")
        recipients = [f"bidder-{i}" for i in range(WORKERS)]
        outcomes = []

        def attempt(recipient):
            try:
                registry.transfer_asset(asset.id, "alice", recipient, "FULL")
                outcomes.append(("ok", recipient))
            except InvalidStateError:
                outcomes.append(("rejected", recipient))

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            list(pool.map(attempt, recipients))

        winners = [r for status, r in outcomes if status == "ok"]
        assert len(winners) == 1
        final = registry.get_asset(asset.id)
        assert len(final.transfer_history) == 1
        assert final.current_holder_id == winners[0]
        held = {h: l for h, l in holdings(registry, recipients + ["alice"]).items() if l}
        assert held == {winners[0]: [asset.id]}
        assert registry.audit() == []

    def test_concurrent_registrations_by_one_creator(self, registry):
        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            assets = list(pool.map(lambda i: register(registry, "alice", title=str(i)), range(50)))

        assert sorted(registry.creators.list_holdings("alice")) == sorted(a.id for a in assets)
        assert registry.audit() == []

    def test_mixed_operations_keep_invariants(self, registry):
        assets = [register(registry, f"creator-{i % 4}", title=str(i)) for i in range(WORKERS * 2)]

        def churn(index_and_asset):
            index, asset = index_and_asset
            if index % 4 == 0:
                registry.transfer_asset(asset.id, asset.creator_id, f"buyer-{index % 3}", "FULL")
            elif index % 4 == 1:
                registry.transfer_asset(asset.id, asset.creator_id, "licensee", "LICENSE")
            elif index % 4 == 2:
                registry.update_metadata(asset.id, "anyone", {"file_size": index})
            else:
                registry.revoke_asset(asset.id, asset.creator_id)
            registry.get_creator_assets(asset.creator_id)

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            list(pool.map(churn, enumerate(assets)))

        assert registry.audit() == []
        statuses = [registry.get_asset(a.id).status for a in assets]
        assert statuses.count(AssetStatus.TRANSFERRED) == len(assets) // 4
        assert statuses.count(AssetStatus.REVOKED) == len(assets) // 4
