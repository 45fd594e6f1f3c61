"""Lazy, memoizing dependency graph of named cells.

Source cells hold values written by the owner of the graph. Derived cells hold
the cached result of a compute function over their declared upstream cells.
Writing a source marks every transitive dependent dirty; reading a dirty cell
recomputes it (and, first, whatever it depends on) exactly once, however many
threads ask for it at the same time.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from asciipipe.errors import CyclicDependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellSpec:
    name: str
    upstream: tuple[str, ...] = ()
    compute: Callable[..., Any] | None = None
    value: Any = None

    @property
    def is_source(self) -> bool:
        return self.compute is None


def source(name: str, value: Any = None) -> CellSpec:
    return CellSpec(name=name, value=value)


def derived(name: str, upstream: Iterable[str], compute: Callable[..., Any]) -> CellSpec:
    """Declare a cell computed as ``compute(*upstream_values)``.

    ``compute`` must read nothing but the values it is passed.
    """
    return CellSpec(name=name, upstream=tuple(upstream), compute=compute)


class _Pending:
    """An in-flight recomputation that other readers can wait on."""

    def __init__(self, generation: int):
        self.generation = generation
        self.done = threading.Event()


@dataclass
class _Cell:
    spec: CellSpec
    value: Any = None
    dirty: bool = True
    generation: int = 0
    pending: _Pending | None = None
    downstream: tuple[str, ...] = field(default=())


def _topological_order(specs: dict[str, CellSpec]) -> list[str]:
    """Order cells so every cell follows its upstreams. Raises on cycles."""
    order: list[str] = []
    state: dict[str, int] = {}  # 1 = on the current path, 2 = finished
    for root in specs:
        if state.get(root) == 2:
            continue
        path = [root]
        stack = [(root, iter(specs[root].upstream))]
        state[root] = 1
        while stack:
            name, upstream = stack[-1]
            nxt = next(upstream, None)
            if nxt is None:
                stack.pop()
                path.pop()
                state[name] = 2
                order.append(name)
            elif state.get(nxt) == 1:
                cycle = path[path.index(nxt) :] + [nxt]
                raise CyclicDependencyError(f"Cyclic dependency: {' -> '.join(cycle)}")
            elif state.get(nxt) is None:
                state[nxt] = 1
                path.append(nxt)
                stack.append((nxt, iter(specs[nxt].upstream)))
    return order


class RecomputeGraph:
    """Thread-safe graph of source and derived cells.

    One lock guards cell state. It is never held while a compute function
    runs, so writes and reads of clean cells are not held up by a long
    recomputation elsewhere in the graph.
    """

    def __init__(self, cells: Iterable[CellSpec]):
        specs: dict[str, CellSpec] = {}
        for spec in cells:
            if spec.name in specs:
                raise ValueError(f"Duplicate cell name: {spec.name!r}")
            specs[spec.name] = spec
        for spec in specs.values():
            for up in spec.upstream:
                if up not in specs:
                    raise ValueError(f"Cell {spec.name!r} depends on unknown cell {up!r}")

        self._order = _topological_order(specs)
        self._lock = threading.Lock()
        self._compute_counts: Counter[str] = Counter()
        self._cells: dict[str, _Cell] = {}

        direct: dict[str, list[str]] = {name: [] for name in specs}
        for spec in specs.values():
            for up in spec.upstream:
                direct[up].append(spec.name)

        # Transitive dependents, built leaves-first.
        closure: dict[str, set[str]] = {}
        for name in reversed(self._order):
            reach: set[str] = set()
            for down in direct[name]:
                reach.add(down)
                reach |= closure[down]
            closure[name] = reach

        position = {name: i for i, name in enumerate(self._order)}
        for name in self._order:
            spec = specs[name]
            self._cells[name] = _Cell(
                spec=spec,
                value=spec.value if spec.is_source else None,
                dirty=not spec.is_source,
                downstream=tuple(sorted(closure[name], key=position.__getitem__)),
            )
        logger.debug("Built recompute graph with %d cells", len(self._cells))

    @property
    def names(self) -> tuple[str, ...]:
        """Cell names in dependency order."""
        return tuple(self._order)

    def _cell(self, name: str) -> _Cell:
        try:
            return self._cells[name]
        except KeyError:
            raise KeyError(f"Unknown cell: {name!r}") from None

    def upstream(self, name: str) -> tuple[str, ...]:
        return self._cell(name).spec.upstream

    def downstream(self, name: str) -> tuple[str, ...]:
        """Every cell that depends on ``name``, directly or not, in dependency order."""
        return self._cell(name).downstream

    def is_dirty(self, name: str) -> bool:
        cell = self._cell(name)
        with self._lock:
            return cell.dirty

    def compute_count(self, name: str) -> int:
        """How many times the cell's compute function has returned, stale results included."""
        self._cell(name)
        with self._lock:
            return self._compute_counts[name]

    def set(self, name: str, value: Any) -> None:
        self.set_many({name: value})

    def set_many(self, values: dict[str, Any]) -> None:
        """Write several source cells as one change; readers see all of it or none of it."""
        cells = [(self._cell(name), value) for name, value in values.items()]
        for cell, _ in cells:
            if not cell.spec.is_source:
                raise ValueError(f"Cannot write derived cell {cell.spec.name!r}")
        invalidated: set[str] = set()
        with self._lock:
            for cell, value in cells:
                if cell.value is value:
                    continue
                cell.value = value
                invalidated.update(cell.downstream)
            for down in invalidated:
                dependent = self._cells[down]
                dependent.dirty = True
                dependent.generation += 1
        if invalidated:
            logger.debug("Set %s; invalidated %s", ", ".join(values), ", ".join(sorted(invalidated)))

    def get(self, name: str) -> Any:
        cell = self._cell(name)
        while True:
            with self._lock:
                if not cell.dirty:
                    return cell.value
                pending = cell.pending
                if pending is None:
                    pending = cell.pending = _Pending(cell.generation)
                    owner = True
                else:
                    owner = False

            if not owner:
                pending.done.wait()
                continue

            try:
                value = self._recompute(cell)
            except Exception:
                with self._lock:
                    cell.pending = None
                    stale = cell.generation != pending.generation
                pending.done.set()
                if not stale:
                    raise
                # Inputs changed mid-run, so the error may come from mixing old and new values.
                logger.debug("Discarded failed stale computation of %s", name, exc_info=True)
                continue
            except BaseException:
                with self._lock:
                    cell.pending = None
                pending.done.set()
                raise

            with self._lock:
                cell.pending = None
                self._compute_counts[name] += 1
                current = cell.generation == pending.generation
                if current:
                    cell.value = value
                    cell.dirty = False
            pending.done.set()
            if current:
                logger.debug("Recomputed %s", name)
                return value
            logger.debug("Discarded stale result for %s", name)

    def _recompute(self, cell: _Cell) -> Any:
        args = [self.get(up) for up in cell.spec.upstream]
        return cell.spec.compute(*args)
