import pytest

from moviewatcher.filters import accepts, matches_option
from moviewatcher.models import FilterOption, FilterSet, Showing, Watcher


def make_watcher(**filter_overrides) -> Watcher:
    filters = FilterSet(start_after=1000, start_before=5000, **filter_overrides)
    return Watcher(
        id="w-1",
        user_id="u-1",
        movie_id=42,
        cinema_id="PATHE1",
        name="Dune in IMAX",
        filters=filters,
    )


def make_showing(**overrides) -> Showing:
    values = dict(
        id=1,
        movie_id=42,
        cinema_id="PATHE1",
        start_time=3000,
        is_3d=True,
        imax=True,
        ov=True,
        nl=True,
        hfr=True,
        atmos=True,
        is_4k=True,
        laser=True,
        is_4dx=True,
        dolby_cinema=True,
    )
    values.update(overrides)
    return Showing(**values)


@pytest.mark.parametrize(
    "expected, actual, result",
    [
        (FilterOption.NO_PREFERENCE, False, True),
        (FilterOption.NO_PREFERENCE, True, True),
        (FilterOption.YES, None, True),
        (FilterOption.NO, None, True),
        (FilterOption.YES, True, True),
        (FilterOption.YES, False, False),
        (FilterOption.NO, True, False),
        (FilterOption.NO, False, True),
        (FilterOption.YES, 1, True),
        (FilterOption.YES, 0, False),
        (FilterOption.NO, 0, True),
        (FilterOption.NO, 1, False),
    ],
)
def test_matches_option_ternary_semantics(expected, actual, result):
    assert matches_option(expected, actual) is result


def test_accepts_full_match():
    assert accepts(make_watcher(), make_showing())


def test_accepts_rejects_outside_window():
    watcher = make_watcher()
    assert not accepts(watcher, make_showing(start_time=6000))
    assert not accepts(watcher, make_showing(start_time=999))


def test_accepts_window_bounds_are_inclusive():
    watcher = make_watcher()
    assert accepts(watcher, make_showing(start_time=1000))
    assert accepts(watcher, make_showing(start_time=5000))


def test_accepts_rejects_other_movie_and_cinema():
    watcher = make_watcher()
    assert not accepts(watcher, make_showing(movie_id=43))
    assert not accepts(watcher, make_showing(cinema_id="PATHE2"))


def test_accepts_checks_every_attribute():
    watcher = make_watcher(imax=FilterOption.YES, is_3d=FilterOption.NO)

    assert not accepts(watcher, make_showing())
    assert accepts(watcher, make_showing(is_3d=False))
    assert accepts(watcher, make_showing(is_3d=0, imax=1))
    assert not accepts(watcher, make_showing(is_3d=False, imax=False))


def test_accepts_unknown_attributes_never_disqualify():
    watcher = make_watcher(
        dolby_cinema=FilterOption.YES,
        is_4dx=FilterOption.NO,
        laser=FilterOption.YES,
    )
    showing = make_showing(dolby_cinema=None, is_4dx=None, laser=None)
    assert accepts(watcher, showing)


def test_filter_option_parse_accepts_names_and_bools():
    assert FilterOption.parse("yes") is FilterOption.YES
    assert FilterOption.parse("NOPREFERENCE") is FilterOption.NO_PREFERENCE
    assert FilterOption.parse("no_preference") is FilterOption.NO_PREFERENCE
    assert FilterOption.parse(False) is FilterOption.NO
    assert FilterOption.parse(None) is FilterOption.NO_PREFERENCE
    with pytest.raises(ValueError):
        FilterOption.parse("maybe")
