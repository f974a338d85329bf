"""Unit tests for the filter resolver."""

from qsre.engine.filters import admits, resolve
from qsre.schemas.rule import DimensionFilter, FilterMode

CATALOG = ["P1", "P2", "P3"]


def test_none_admits_whole_catalog():
    """Mode none ignores the selection."""
    flt = DimensionFilter(mode=FilterMode.NONE, selected=["P1"])
    assert resolve(flt, CATALOG) == {"P1", "P2", "P3"}


def test_include_intersects_catalog():
    """Include keeps only selected ids that exist in the catalog."""
    flt = DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1", "P9"])
    assert resolve(flt, CATALOG) == {"P1"}


def test_include_with_empty_selection_admits_nothing():
    flt = DimensionFilter(mode=FilterMode.INCLUDE, selected=[])
    assert resolve(flt, CATALOG) == set()


def test_exclude_removes_selected():
    """Exclude drops selected ids; unknown ids are ignored."""
    flt = DimensionFilter(mode=FilterMode.EXCLUDE, selected=["P2", "P9"])
    assert resolve(flt, CATALOG) == {"P1", "P3"}


def test_exclude_with_empty_selection_admits_catalog():
    flt = DimensionFilter(mode=FilterMode.EXCLUDE)
    assert resolve(flt, CATALOG) == set(CATALOG)


def test_selected_is_deduplicated():
    flt = DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1", "P1", "P2"])
    assert flt.selected == ["P1", "P2"]


def test_admits_owner():
    """A record passes when its owner is in the admitted set."""
    flt = DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1"])
    admitted = resolve(flt, CATALOG)
    assert admits(flt, admitted, "P1") is True
    assert admits(flt, admitted, "P2") is False


def test_admits_null_owner():
    """A record without an owner fails include and passes exclude."""
    include = DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1"])
    exclude = DimensionFilter(mode=FilterMode.EXCLUDE, selected=["P1"])
    assert admits(include, resolve(include, CATALOG), None) is False
    assert admits(exclude, resolve(exclude, CATALOG), None) is True
    assert admits(DimensionFilter(), set(), None) is True


def test_owner_missing_from_catalog_is_rejected():
    flt = DimensionFilter(mode=FilterMode.EXCLUDE, selected=["P1"])
    assert admits(flt, resolve(flt, CATALOG), "P-unknown") is False
