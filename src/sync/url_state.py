"""Filter state <-> URL query string.

One query parameter per filter group holds a comma-separated slug list and
one parameter holds the free text.  Empty groups and short text are
omitted entirely, never written as empty values.  Parameters the
synchronizer does not own are preserved in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import parse_qsl, urlencode

from src.models.query import DEFAULT_MIN_QUERY_LENGTH, FilterQuery


@dataclass(frozen=True)
class UrlParamNames:
    """Query parameter names for one content kind.

    Attributes:
        text: Parameter holding the free-text query.
        groups: Taxonomy key -> parameter holding its selection.
    """

    text: str = "q"
    groups: Mapping[str, str] = field(default_factory=dict)

    def owned(self) -> frozenset[str]:
        return frozenset({self.text, *self.groups.values()})

    def with_overrides(self, overrides: Mapping[str, str] | None) -> UrlParamNames:
        """Return a copy with some names replaced.

        ``overrides`` is keyed by taxonomy, or by ``"text"`` for the text
        parameter.
        """
        if not overrides:
            return self
        groups = {tax: overrides.get(tax, param) for tax, param in self.groups.items()}
        return UrlParamNames(text=overrides.get("text", self.text), groups=groups)


def split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def parse_filter_state(query_string: str, names: UrlParamNames) -> FilterQuery:
    """Read a FilterQuery from a URL query string (leading ``?`` optional)."""
    pairs = parse_qsl(query_string.lstrip("?"), keep_blank_values=True)
    values: dict[str, str] = {}
    for key, value in pairs:
        values.setdefault(key, value)

    selected = {
        taxonomy: split_csv(values.get(param))
        for taxonomy, param in names.groups.items()
    }
    return FilterQuery.build(text=values.get(names.text, "").strip(), selected=selected)


def serialize_filter_state(
    query: FilterQuery,
    names: UrlParamNames,
    min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
    base_query: str = "",
) -> str:
    """Write *query* into *base_query*, replacing only the owned parameters.

    Slugs are written sorted so equal selections always serialize equally.
    """
    owned = names.owned()
    pairs = [
        (key, value)
        for key, value in parse_qsl(base_query.lstrip("?"), keep_blank_values=True)
        if key not in owned
    ]

    if query.search_phrase(min_query_length):
        pairs.append((names.text, query.text.strip()))
    for taxonomy, param in names.groups.items():
        slugs = sorted(query.selection(taxonomy))
        if slugs:
            pairs.append((param, ",".join(slugs)))

    return urlencode(pairs, safe=",")
