"""Graph algorithms for the module graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from graph.builder import ModulesStructure


class UnknownModuleError(Exception):
    """Raised when a module name is not present in the graph."""

    def __init__(self, module: str, source: str | None = None) -> None:
        self.module = module
        self.source = source
        where = f" declared in file {source}" if source else ""
        super().__init__(f"Module {module}{where} was not found")


class CircularDependencyError(Exception):
    """Raised when a load order is requested for a cyclic graph."""

    def __init__(self, trail: list[str]) -> None:
        self.trail = trail
        super().__init__(
            "Can not build dependency tree - found circular dependency: "
            + " -> ".join(trail)
        )


class _CycleSearch:
    """Depth-first search state for find_circular_reference."""

    def __init__(self, modules: ModulesStructure) -> None:
        self.modules = modules
        # Nodes whose whole reachable subgraph is cycle-free.
        self.clean: set[str] = set()

    def _local_deps(self, name: str) -> Iterator[str]:
        return (dep for dep in self.modules[name].dependencies if dep in self.modules)

    def find_from(self, start: str) -> list[str] | None:
        if start in self.clean:
            return None

        trail = [start]
        on_trail = {start}
        stack = [self._local_deps(start)]
        while stack:
            for dep in stack[-1]:
                if dep in on_trail:
                    return [*trail, dep]
                if dep in self.clean:
                    continue
                trail.append(dep)
                on_trail.add(dep)
                stack.append(self._local_deps(dep))
                break
            else:
                stack.pop()
                done = trail.pop()
                on_trail.discard(done)
                self.clean.add(done)
        return None


def find_circular_reference(modules: ModulesStructure) -> list[str] | None:
    """Find the first dependency cycle in the graph.

    Searches depth-first from every module in iteration order and follows
    only dependencies that exist in the graph.

    Returns:
        The trail of module names ending with the revisited one
        (e.g. ``["A", "B", "A"]``), or None when the graph is acyclic.
    """
    search = _CycleSearch(modules)
    for name in modules:
        found = search.find_from(name)
        if found is not None:
            return found
    return None


def resolve_dependencies(module_name: str, modules: ModulesStructure) -> list[str]:
    """Return the transitive dependencies of a module in load order.

    Dependencies are emitted after their own dependencies, following the
    declared order; a module shared by several branches appears once, at its
    first required position. The module itself and names missing from the
    graph are left out.

    Raises:
        UnknownModuleError: If ``module_name`` is not in the graph.
        CircularDependencyError: If the graph contains a cycle.
    """
    if module_name not in modules:
        raise UnknownModuleError(module_name)

    trail = find_circular_reference(modules)
    if trail is not None:
        raise CircularDependencyError(trail)

    ordered: list[str] = []
    emitted: set[str] = set()
    # (module whose dependencies are being walked, remaining dependencies)
    stack: list[tuple[str | None, Iterator[str]]] = [
        (None, iter(modules[module_name].dependencies))
    ]
    while stack:
        owner, deps = stack[-1]
        for dep in deps:
            if dep in emitted or dep not in modules:
                continue
            stack.append((dep, iter(modules[dep].dependencies)))
            break
        else:
            stack.pop()
            if owner is not None and owner not in emitted:
                emitted.add(owner)
                ordered.append(owner)

    return [name for name in ordered if name != module_name]


def build_dot_diagram(modules: ModulesStructure) -> str:
    """Render the module graph in DOT notation.

    Every module becomes a node; every dependency on a module present in the
    graph becomes an edge.
    """
    lines = ["digraph dependencies {"]
    lines.extend(f'"{name}";' for name in modules)
    for name in modules:
        lines.extend(
            f'\t"{name}" -> "{dep}";'
            for dep in modules[name].dependencies
            if dep in modules
        )
    lines.append("}")
    return "\n".join(lines) + "\n"


__all__ = [
    "CircularDependencyError",
    "UnknownModuleError",
    "build_dot_diagram",
    "find_circular_reference",
    "resolve_dependencies",
]
