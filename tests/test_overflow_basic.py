from pathkeeper.stages.normalize import serialized_length
from pathkeeper.stages.overflow import handle_overflow


def test_fitting_candidate_is_returned_unchanged():
    entries = [r"C:\a", r"C:\b", "%PATH_1%"]
    keep, overflow = handle_overflow(entries, 2000)
    assert keep == entries
    assert overflow == []


def test_exact_budget_is_not_overflow():
    entries = [r"C:\a", r"C:\b"]
    keep, overflow = handle_overflow(entries, len(r"C:\a;C:\b"))
    assert keep == entries and overflow == []


def test_evicts_right_to_left_and_refills_smaller_entries():
    long_entry = "C:\\" + "z" * 30
    keep, overflow = handle_overflow([r"C:\a", long_entry, r"C:\b"], 10)
    assert keep == [r"C:\a", r"C:\b"]
    assert overflow == [long_entry]


def test_variable_references_are_never_evicted():
    ref = "%A%\\" + "x" * 50
    keep, overflow = handle_overflow([ref, r"C:\y", "%PATH_1%"], 10)
    assert keep == [ref, "%PATH_1%"]
    assert overflow == [r"C:\y"]


def test_overflow_keeps_original_order():
    entries = [f"C:\\dir{i:02d}" for i in range(10)] + ["%PATH_1%"]
    keep, overflow = handle_overflow(entries, 30)
    assert keep == [r"C:\dir08", r"C:\dir09", "%PATH_1%"]
    assert overflow == entries[:8]
    assert serialized_length(keep) <= 30
