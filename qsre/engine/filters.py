"""Filter resolver - admits catalog ids for one filter dimension."""

from collections.abc import Iterable

from qsre.schemas.rule import DimensionFilter, FilterMode


def resolve(flt: DimensionFilter, catalog: Iterable[str]) -> set[str]:
    """
    Admitted subset of catalog ids.
    none -> catalog, include -> catalog & selected, exclude -> catalog - selected.
    An include filter with nothing selected admits nothing.
    """
    ids = set(catalog)
    if flt.mode == FilterMode.NONE:
        return ids
    selected = set(flt.selected)
    if flt.mode == FilterMode.INCLUDE:
        return ids & selected
    return ids - selected


def admits(flt: DimensionFilter, admitted: set[str], owner_id: str | None) -> bool:
    """Whether a record owned by owner_id passes a resolved dimension."""
    if flt.mode == FilterMode.NONE:
        return True
    if owner_id is None:
        # Nothing to exclude; nothing that could be included
        return flt.mode == FilterMode.EXCLUDE
    return owner_id in admitted
