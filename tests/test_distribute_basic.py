import pytest

from pathkeeper.stages.distribute import distribute

BUCKETS = ["PATH_1", "PATH_2", "PATH_3", "PATH_4"]


def test_empty_buckets_fill_in_ordinal_order():
    out = distribute([r"C:\a", r"C:\b", r"C:\c"], BUCKETS)
    assert [b.entries for b in out] == [[r"C:\a"], [r"C:\b"], [r"C:\c"], []]


def test_single_entry_goes_to_first_bucket():
    out = distribute(["C:\\" + "v" * 2100], BUCKETS)
    assert out[0].name == "PATH_1"
    assert len(out[0].entries) == 1
    assert all(not b.entries for b in out[1:])


def test_running_length_includes_delimiters():
    out = distribute(["aaaa", "b", "c"], ["X", "Y"])
    assert [b.entries for b in out] == [["aaaa"], ["b", "c"]]
    assert [b.length for b in out] == [4, 3]
    assert out[1].value() == "b;c"
    assert out[1].length == len(out[1].value())


def test_preserves_pool_order_within_each_bucket():
    pool = [f"C:\\p{i:02d}" + "x" * (i % 5) for i in range(30)]
    out = distribute(pool, BUCKETS)
    for b in out:
        assert b.entries == sorted(b.entries, key=pool.index)
    assert sorted(e for b in out for e in b.entries) == sorted(pool)


@pytest.mark.parametrize(
    "lengths",
    [
        [1, 1, 1, 1, 1],
        [40, 3, 3, 3, 3, 3, 3, 3],
        [5, 17, 2, 9, 30, 1, 1, 12, 8],
        [100],
    ],
)
def test_balance_bound_is_one_serialized_item(lengths):
    pool = [chr(ord("a") + i) * n for i, n in enumerate(lengths)]
    out = distribute(pool, BUCKETS)
    spread = max(b.length for b in out) - min(b.length for b in out)
    assert spread <= max(lengths) + 1


def test_distribute_is_deterministic():
    pool = [r"C:\a", r"C:\bb", r"C:\ccc", r"C:\d"]
    first = [b.entries for b in distribute(pool, BUCKETS)]
    second = [b.entries for b in distribute(pool, BUCKETS)]
    assert first == second


def test_distribute_needs_a_bucket():
    with pytest.raises(ValueError):
        distribute([r"C:\a"], [])
