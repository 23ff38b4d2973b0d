from pathkeeper.stages.normalize import normalize
from pathkeeper.stages.pool import build_pool, is_bucket_reference

BUCKETS = ["PATH_1", "PATH_2", "PATH_3", "PATH_4"]


def test_pool_concatenates_buckets_then_overflow():
    pool = build_pool([[r"C:\a"], [r"C:\b"], [], [r"C:\c"]], [r"C:\d"], {}, BUCKETS)
    assert pool == [r"C:\a", r"C:\b", r"C:\c", r"C:\d"]


def test_pool_drops_bucket_self_and_cross_references():
    pool = build_pool(
        [[r"C:\a", "%PATH_1%", r"%PATH_2%\bin"], ['"%path_3%"'], [], []],
        ["%PATH_4%/x"],
        {},
        BUCKETS,
    )
    assert pool == [r"C:\a"]


def test_pool_keeps_other_variable_references():
    pool = build_pool([["%PATH_10%", "%TEMP%"], [], [], []], [], {}, BUCKETS)
    assert pool == ["%PATH_10%", "%TEMP%"]


def test_pool_dedups_across_buckets_and_overflow():
    pool = build_pool([[r"C:\a"], ["c:\\A\\"], [], []], [r"C:\A", r"C:\b"], {}, BUCKETS)
    assert pool == [r"C:\a", r"C:\b"]


def test_pool_resubstitutes_and_dedups_again():
    vm = {r"c:\tools": "%TOOLS%"}
    pool = build_pool([["%TOOLS%"], [], [], []], [r"C:\Tools", r"C:\x"], vm, BUCKETS)
    assert pool == ["%TOOLS%", r"C:\x"]


def test_pool_splits_substitutions_that_carry_the_delimiter():
    vm = {normalize(r"C:\multi"): r"C:\p;C:\q"}
    pool = build_pool([[r"C:\multi", r"C:\z"], [], [], []], [], vm, BUCKETS)
    assert pool == [r"C:\p", r"C:\q", r"C:\z"]


def test_is_bucket_reference():
    assert is_bucket_reference("%PATH_1%", BUCKETS)
    assert is_bucket_reference(r"%path_4%\sub", BUCKETS)
    assert not is_bucket_reference("%PATH_5%", BUCKETS)
    assert not is_bucket_reference("%PATH_1%x", BUCKETS)
    assert not is_bucket_reference("%PATH_1%", [])
