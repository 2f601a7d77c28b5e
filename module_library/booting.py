"""
OAP Module Library - Booting Parameters

A ledger of ``label | value`` rows collected while the server boots: the
configuration loader and provider ``prepare`` code append to it, and the
starter prints it on every boot attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from typing import Any, Iterator, List, Tuple

from rich.console import Console
from rich.table import Table

from module_library.errors import BootingParametersFrozenError


@dataclass(frozen=True)
class Row:
    """One diagnostic row."""

    label: str
    value: str

    @classmethod
    def of(cls, label: str, value: Any) -> "Row":
        return cls(label=str(label), value="" if value is None else str(value))


class BootingParameters:
    """
    Terminal friendly table of the key booting parameters.

    Rows keep insertion order. The table is frozen when the module manager
    leaves its prepare stage; appending after that raises
    ``BootingParametersFrozenError``.
    """

    def __init__(self, description: str):
        self._description = description
        self._rows: List[Row] = []
        self._frozen = False

    @property
    def description(self) -> str:
        return self._description

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def rows(self) -> Tuple[Row, ...]:
        return tuple(self._rows)

    def add_row(self, label: str, value: Any) -> "BootingParameters":
        """Append a row (fluent API)."""
        if self._frozen:
            raise BootingParametersFrozenError(
                f"Booting parameters are read-only after prepare, rejected row {label!r}."
            )
        self._rows.append(Row.of(label, value))
        return self

    def freeze(self) -> None:
        self._frozen = True

    def as_dict(self) -> dict:
        """Rows as a mapping; later rows win on duplicate labels."""
        return {row.label: row.value for row in self._rows}

    def render(self, width: int = 120) -> str:
        """Render the description line followed by a plain-text table."""
        table = Table(show_lines=False)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", overflow="fold")
        for row in self._rows:
            table.add_row(row.label, row.value)

        buffer = StringIO()
        console = Console(file=buffer, width=width, color_system=None, force_terminal=False)
        console.print(self._description, markup=False, highlight=False)
        console.print(table)
        return buffer.getvalue()

    def __iter__(self) -> Iterator[Row]:
        return iter(tuple(self._rows))

    def __len__(self) -> int:
        return len(self._rows)

    def __str__(self) -> str:
        return self.render()
