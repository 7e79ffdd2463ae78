"""
Import records produced by the extractors.

An import is either a :class:`LiteralImport` (a plain module specifier) or a
:class:`TemplateImport` (a template-literal specifier with interpolations).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .package import PackageDescriptor


@dataclass(frozen=True)
class BaseImport:
    """Fields shared by every import record."""
    path: str
    package: PackageDescriptor
    is_dynamic: bool
    tree_type: Optional[str]

    def _base_dict(self) -> dict:
        return {
            "path": self.path,
            "is_dynamic": self.is_dynamic,
            "package": self.package.name,
            "tree_type": self.tree_type,
        }


@dataclass(frozen=True)
class LiteralImport(BaseImport):
    """An import whose module specifier is a literal string."""
    specifier: str

    def to_dict(self) -> dict:
        d = {"specifier": self.specifier}
        d.update(self._base_dict())
        return d


@dataclass(frozen=True)
class TemplateImport(BaseImport):
    """
    An import whose specifier is a template literal with interpolations.

    ``cooked_quasis`` holds the literal text segments; the first one always
    comes before the first expression. ``expression_name_hints`` has one
    entry per interpolated expression: its identifier name when the
    expression is a bare identifier, else None.
    """
    cooked_quasis: tuple[str, ...]
    expression_name_hints: tuple[Optional[str], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "cooked_quasis", tuple(self.cooked_quasis))
        object.__setattr__(self, "expression_name_hints", tuple(self.expression_name_hints))
        if len(self.cooked_quasis) != len(self.expression_name_hints) + 1:
            raise ValueError(
                f"Template import in {self.path} has {len(self.cooked_quasis)} "
                f"quasis for {len(self.expression_name_hints)} expressions"
            )

    def to_dict(self) -> dict:
        d = {
            "cooked_quasis": list(self.cooked_quasis),
            "expression_name_hints": list(self.expression_name_hints),
        }
        d.update(self._base_dict())
        return d


Import = Union[LiteralImport, TemplateImport]
