import pytest

from auditcord.cache.role_snapshot_cache import RoleDiff, RoleSnapshotCache


def test_first_diff_seeds_and_reports_nothing():
    cache = RoleSnapshotCache()

    result = cache.diff(1, 2, [10, 11])

    assert result == RoleDiff()
    assert not result
    assert cache.get(1, 2) == frozenset({"10", "11"})


def test_diff_reports_added_and_removed():
    cache = RoleSnapshotCache()
    cache.seed(1, 2, ["C"])

    result = cache.diff(1, 2, ["A", "B", "C"])

    assert result.added == frozenset({"A", "B"})
    assert result.removed == frozenset()
    assert cache.get(1, 2) == frozenset({"A", "B", "C"})


def test_diff_is_idempotent_for_same_roles():
    cache = RoleSnapshotCache()
    cache.seed(1, 2, ["A"])

    first = cache.diff(1, 2, ["B"])
    second = cache.diff(1, 2, ["B"])

    assert first.added == {"B"} and first.removed == {"A"}
    assert second == RoleDiff()


@pytest.mark.parametrize(
    "seed, sequence",
    [
        (["A"], [["A", "B"], [], ["C"], ["C", "A"]]),
        ([], [["X"], ["X"], ["Y", "Z"]]),
    ],
)
def test_snapshot_always_equals_last_diff_argument(seed, sequence):
    cache = RoleSnapshotCache()
    cache.seed("g", "m", seed)

    for roles in sequence:
        cache.diff("g", "m", roles)
        assert cache.get("g", "m") == frozenset(roles)


def test_keys_are_normalised_to_strings():
    cache = RoleSnapshotCache()
    cache.seed(1, 2, [3])

    assert ("1", "2") in cache
    assert (1, 2) in cache
    assert cache.diff("1", "2", ["3"]) == RoleDiff()


def test_evict_is_idempotent():
    cache = RoleSnapshotCache()
    cache.seed(1, 2, ["A"])

    cache.evict(1, 2)
    cache.evict(1, 2)

    assert (1, 2) not in cache
    assert len(cache) == 0


def test_evict_scope_drops_only_that_guild():
    cache = RoleSnapshotCache()
    cache.seed(1, 10, ["A"])
    cache.seed(1, 11, ["A"])
    cache.seed(2, 10, ["A"])

    assert cache.evict_scope(1) == 2
    assert cache.scope_sizes() == {"2": 1}

