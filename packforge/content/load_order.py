# packforge/content/load_order.py
from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from packforge.content.pack_descriptor import PackageDescriptor
from packforge.core.jsonutils import readJson5, writeJson5

logger = logging.getLogger(__name__)

__all__ = [
    "ExclusionReason",
    "Exclusion",
    "LoadOrderResult",
    "resolveLoadOrder",
    "readLoadOrder",
    "writeLoadOrder",
]



class ExclusionReason(str, Enum):
    MISSING_DEPENDENCY = "missingDependency"
    CONFLICT = "conflict"
    HOST_VERSION = "hostVersion"
    INVALID_DESCRIPTOR = "invalidDescriptor"
    CYCLE = "cycle"
    DEPENDENCY_EXCLUDED = "dependencyExcluded"
    CONTENT_ERROR = "contentError"



@dataclass(frozen=True, slots=True)
class Exclusion:
    reason: ExclusionReason
    detail: str
    # Package opted out of failure reporting via ignoreLoadFailure
    silent: bool = False

    def toDict(self) -> dict[str, Any]:
        return {"reason": self.reason.value, "detail": self.detail, "silent": self.silent}



@dataclass(slots=True)
class LoadOrderResult:
    order: list[str] = field(default_factory=list)
    excluded: dict[str, Exclusion] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)



# ------------------------------------------------------------------ #
# Per-package checks
# ------------------------------------------------------------------ #

def _checkPackage(desc: PackageDescriptor, present: Mapping[str, PackageDescriptor], hostVersion: str) -> list[tuple[ExclusionReason, str]]:
    failures: list[tuple[ExclusionReason, str]] = []

    missing = sorted(dep for dep in desc.dependsOn if dep not in present)
    if missing:
        failures.append((ExclusionReason.MISSING_DEPENDENCY, f"missing dependencies: {', '.join(missing)}"))

    conflicts = sorted(other for other in desc.conflictsWith if other in present and other != desc.name)
    if conflicts:
        failures.append((ExclusionReason.CONFLICT, f"conflicts with loaded packages: {', '.join(conflicts)}"))

    if not desc.hostConstraint.isEmpty:
        try:
            failed = desc.hostConstraint.check(hostVersion)
        except ValueError as err:
            failures.append((ExclusionReason.HOST_VERSION, f"cannot parse version constraint: {err}"))
        else:
            if failed is not None:
                failures.append((ExclusionReason.HOST_VERSION, failed[1]))

    return failures



# ------------------------------------------------------------------ #
# Graph helpers
# ------------------------------------------------------------------ #

def _stronglyConnected(nodes: Sequence[str], edges: Mapping[str, Sequence[str]]) -> list[list[str]]:
    """
    Tarjan's SCC over `nodes`, iterative so deep dependency chains do not
    hit the recursion limit. `edges[node]` lists the nodes it depends on.
    """
    index: dict[str, int] = {}
    lowLink: dict[str, int] = {}
    onStack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue
        work: list[tuple[str, int]] = [(root, 0)]
        while work:
            node, childIdx = work.pop()
            if childIdx == 0:
                index[node] = lowLink[node] = counter
                counter += 1
                stack.append(node)
                onStack.add(node)

            children = edges.get(node, ())
            recursed = False
            while childIdx < len(children):
                child = children[childIdx]
                childIdx += 1
                if child not in index:
                    work.append((node, childIdx))
                    work.append((child, 0))
                    recursed = True
                    break
                if child in onStack:
                    lowLink[node] = min(lowLink[node], index[child])
            if recursed:
                continue

            if lowLink[node] == index[node]:
                component: list[str] = []
                while True:
                    member = stack.pop()
                    onStack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component))

            if work:
                parent = work[-1][0]
                lowLink[parent] = min(lowLink[parent], lowLink[node])

    return components



def _topologicalOrder(nodes: Sequence[str], edges: Mapping[str, Sequence[str]], previousOrder: Sequence[str]) -> list[str]:
    """
    Kahn's algorithm; among ready packages the one placed earlier in the
    previous run goes first, then lexicographic name.
    """
    nodeSet = set(nodes)
    prevIndex = {name: idx for idx, name in enumerate(previousOrder)}
    unseen = len(previousOrder)

    inDegree = {node: 0 for node in nodes}
    dependents: dict[str, list[str]] = {node: [] for node in nodes}
    for node in nodes:
        for dep in edges.get(node, ()):
            if dep in nodeSet:
                inDegree[node] += 1
                dependents[dep].append(node)

    ready = [(prevIndex.get(node, unseen), node) for node in nodes if inDegree[node] == 0]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            inDegree[dependent] -= 1
            if inDegree[dependent] == 0:
                heapq.heappush(ready, (prevIndex.get(dependent, unseen), dependent))
    return order



# ------------------------------------------------------------------ #
# Resolver
# ------------------------------------------------------------------ #

def resolveLoadOrder(
    descriptors: Mapping[str, PackageDescriptor],
    previousOrder: Sequence[str],
    hostVersion: str,
) -> LoadOrderResult:
    """
    Computes a deterministic load order for `descriptors` (enabled packages by name).

    Packages failing a dependency, conflict or host version check are excluded
    with a reason; with ignoreLoadFailure the failure becomes a warning and
    the package stays (edges to missing dependencies are dropped). Members of
    dependency cycles are excluded, then exclusion propagates to dependents.
    Never raises for graph problems.
    """
    result = LoadOrderResult()
    names = sorted(descriptors)

    for name in names:
        desc = descriptors[name]
        failures = _checkPackage(desc, descriptors, hostVersion)
        if not failures:
            continue
        if desc.ignoreLoadFailure:
            for _reason, detail in failures:
                message = f"'{name}' {detail}; loading anyway (ignoreLoadFailure)"
                logger.warning("%s", message)
                result.warnings.append(message)
            continue
        reason, detail = failures[0]
        logger.error("Will not load '%s': %s", name, detail)
        result.excluded[name] = Exclusion(reason, detail)

    candidates = [name for name in names if name not in result.excluded]
    edges: dict[str, list[str]] = {
        name: sorted(dep for dep in descriptors[name].dependsOn if dep in descriptors)
        for name in candidates
    }
    # Edges into already-excluded packages are handled by propagation below
    graphEdges = {
        name: [dep for dep in deps if dep not in result.excluded]
        for name, deps in edges.items()
    }

    for component in _stronglyConnected(candidates, graphEdges):
        isCycle = len(component) > 1 or component[0] in graphEdges.get(component[0], ())
        if not isCycle:
            continue
        detail = f"dependency cycle: {' -> '.join(component)}"
        for member in component:
            silent = descriptors[member].ignoreLoadFailure
            if not silent:
                logger.error("Will not load '%s': %s", member, detail)
            else:
                logger.warning("Will not load '%s': %s", member, detail)
            result.excluded[member] = Exclusion(ExclusionReason.CYCLE, detail, silent=silent)

    remaining = [name for name in candidates if name not in result.excluded]
    sortedNames = _topologicalOrder(remaining, graphEdges, previousOrder)

    for name in sortedNames:
        excludedDeps = [dep for dep in edges[name] if dep in result.excluded]
        if not excludedDeps:
            result.order.append(name)
            continue
        detail = f"depends on excluded packages: {', '.join(excludedDeps)}"
        if descriptors[name].ignoreLoadFailure:
            message = f"'{name}' {detail}; loading anyway (ignoreLoadFailure)"
            logger.warning("%s", message)
            result.warnings.append(message)
            result.order.append(name)
            continue
        logger.error("Will not load '%s': %s", name, detail)
        result.excluded[name] = Exclusion(ExclusionReason.DEPENDENCY_EXCLUDED, detail)

    logger.info("Resolved load order of %d packages, %d excluded", len(result.order), len(result.excluded))
    return result



# ------------------------------------------------------------------ #
# Persistence
# ------------------------------------------------------------------ #

def readLoadOrder(path: Path) -> list[str]:
    """Previous run's order; empty when absent or unreadable."""
    if not path.is_file():
        return []
    try:
        rawJson: Any = readJson5(path)
    except (OSError, ValueError) as err:
        logger.warning("Ignoring unreadable load order '%s': %s", path, err)
        return []
    if not isinstance(rawJson, list):
        logger.warning("Ignoring load order '%s': expected a list", path)
        return []
    return [str(name) for name in rawJson]



def writeLoadOrder(path: Path, order: Sequence[str]) -> None:
    writeJson5(path, list(order))
