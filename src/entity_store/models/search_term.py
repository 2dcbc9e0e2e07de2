from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass
class SearchTerm:
    """
    A `field <operator> value` triple supplied by a caller to build a search filter.

    Every member is optional on the value itself; `field` and `value` are only
    enforced when the term is turned into a filter fragment.
    """

    field: str | None = None
    value: Any = None
    operator: str | None = None

    @classmethod
    def new_search_term(cls, obj: "Mapping[str, Any] | SearchTerm | Any") -> "SearchTerm":
        """
        Copy the present members of a loosely shaped input onto a new term.

        Accepts a mapping (e.g. parsed query params) or any object exposing
        `field` / `value` / `operator` attributes. Missing (None) or empty-string
        members are left as None rather than defaulted; other falsy values such as
        0 or False are copied.
        """
        term = cls()
        for name in ("field", "value", "operator"):
            if isinstance(obj, Mapping):
                member = obj.get(name)
            else:
                member = getattr(obj, name, None)
            if member is not None and member != "":
                setattr(term, name, member)
        return term
