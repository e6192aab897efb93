"""Edit parameters applied when deriving the edited tier from the original.

A `FilterTransform` is a small immutable bag of named numeric parameters
(for example ``brightness`` or ``contrast``). It is stored alongside an
image record as plain JSON and rebuilt with `FilterTransform.from_dict`.
"""

from __future__ import annotations

from numbers import Real
from typing import Any, Dict, Iterator, Mapping, Optional


class FilterTransform:
    """Immutable mapping of filter parameter names to numeric values.

    Args:
        parameters: Optional mapping of parameter name to value.

    Raises:
        ValueError: If a key is not a string or a value is not a real number.
    """

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self._parameters: Dict[str, float] = {}
        for name, value in (parameters or {}).items():
            if not isinstance(name, str):
                raise ValueError(f"Transform parameter names must be strings, got {name!r}")
            # bool is a Real subclass but never a meaningful filter value
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ValueError(f"Transform parameter {name!r} must be numeric, got {value!r}")
            self._parameters[name] = value

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "FilterTransform":
        """Rebuild a transform from its stored plain-mapping form."""
        return cls(raw)

    def to_dict(self) -> Dict[str, float]:
        """Return a fresh plain mapping suitable for serialization."""
        return dict(self._parameters)

    def with_values(self, **values: float) -> "FilterTransform":
        """Return a new transform with `values` merged over the current ones."""
        merged = self.to_dict()
        merged.update(values)
        return FilterTransform(merged)

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self._parameters.get(name, default)

    def __getitem__(self, name: str) -> float:
        return self._parameters[name]

    def __contains__(self, name: object) -> bool:
        return name in self._parameters

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterTransform):
            return NotImplemented
        return self._parameters == other._parameters

    def __hash__(self) -> int:
        return hash(frozenset(self._parameters.items()))

    def __repr__(self) -> str:
        return f"FilterTransform({self._parameters!r})"
