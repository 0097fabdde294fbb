import pytest

from gander.resolve import MAX_VERSION, MissingMigrationsError, up_versions


@pytest.mark.parametrize("allow_missing", [False, True])
@pytest.mark.parametrize(
    "fsys, db, target, want",
    [
        (None, None, MAX_VERSION, []),
        ([], [], MAX_VERSION, []),
        ([1, 2, 3], [1, 2, 3], MAX_VERSION, []),
        ([1, 2, 3], [], MAX_VERSION, [1, 2, 3]),
        ([3], [3], MAX_VERSION, []),
        ([3, 4], [3], MAX_VERSION, [4]),
        ([1, 2, 3, 4, 5], [1, 2], 4, [3, 4]),
        ([1, 2, 3, 4, 5], [1, 2], 0, []),
        ([1, 2, 3], [1, 3], 1, []),
    ],
)
def test_common_cases(fsys, db, target, want, allow_missing):
    assert up_versions(fsys, db, target, allow_missing) == want


@pytest.mark.parametrize(
    "fsys, db, target, message",
    [
        (
            [1, 2, 3, 4],
            [1, 3],
            MAX_VERSION,
            "detected 1 missing (out-of-order) migration lower than database version (3): version 2",
        ),
        (
            [1, 2, 3, 4, 5],
            [2, 4, 5],
            MAX_VERSION,
            "detected 2 missing (out-of-order) migrations lower than database version (5): versions 1,3",
        ),
        (
            [1, 2, 3],
            [1, 3],
            2,
            "detected 1 missing (out-of-order) migration lower than database version (3), "
            "with target version (2): version 2",
        ),
        (
            [1, 2, 3],
            [1, 3],
            3,
            "detected 1 missing (out-of-order) migration lower than database version (3), "
            "with target version (3): version 2",
        ),
        (
            [1, 2, 3, 4, 5, 6],
            [1, 3, 4, 6],
            4,
            "detected 1 missing (out-of-order) migration lower than database version (6), "
            "with target version (4): version 2",
        ),
        (
            [1, 2, 3, 4, 5, 6],
            [1, 3, 4, 6],
            6,
            "detected 2 missing (out-of-order) migrations lower than database version (6), "
            "with target version (6): versions 2,5",
        ),
    ],
)
def test_missing_not_allowed(fsys, db, target, message):
    with pytest.raises(MissingMigrationsError) as excinfo:
        up_versions(fsys, db, target, False)
    assert str(excinfo.value) == message


@pytest.mark.parametrize(
    "fsys, db, target, want",
    [
        ([1, 2, 3], [1, 3], MAX_VERSION, [2]),
        ([1, 2, 3, 4, 5], [2, 4], MAX_VERSION, [1, 3, 5]),
        ([1, 2, 3], [1, 3], 2, [2]),
        ([1, 2, 3], [1, 3], 3, [2]),
        ([1, 2, 3, 4, 5, 6], [1, 3, 4, 6], 4, [2]),
        ([1, 2, 3, 4, 5, 6], [1, 3, 4, 6], 6, [2, 5]),
    ],
)
def test_missing_allowed(fsys, db, target, want):
    assert up_versions(fsys, db, target, True) == want


def test_unsorted_input_gives_sorted_output():
    assert up_versions([5, 3, 4, 2, 1], [], MAX_VERSION, False) == [1, 2, 3, 4, 5]


def test_error_carries_details():
    with pytest.raises(MissingMigrationsError) as excinfo:
        up_versions([1, 2, 3, 4, 5], [2, 4, 5], MAX_VERSION, False)
    assert excinfo.value.missing == [1, 3]
    assert excinfo.value.db_max_version == 5