# tests/packforge/content/test_load_order.py
from pathlib import Path

import pytest

from packforge.content.load_order import (
    ExclusionReason,
    readLoadOrder,
    resolveLoadOrder,
    writeLoadOrder,
)
from packforge.content.pack_descriptor import PackageDescriptor
from packforge.semver.semver import HostVersionConstraint


def _pkg(name: str, *deps: str, conflicts: tuple[str, ...] = (), ignore: bool = False, **constraint) -> PackageDescriptor:
    return PackageDescriptor(
        name=name,
        version="1.0.0",
        enabled=True,
        directory=Path("/packages") / name,
        descriptorPath=Path("/packages") / name / "mod.json",
        dependsOn=frozenset(deps),
        conflictsWith=frozenset(conflicts),
        hostConstraint=HostVersionConstraint(**constraint),
        ignoreLoadFailure=ignore,
    )


def _resolve(*packages: PackageDescriptor, previous: list[str] | None = None, host: str = "1.9.1"):
    return resolveLoadOrder({pkg.name: pkg for pkg in packages}, previous or [], host)


def test_dependencies_come_first():
    result = _resolve(_pkg("AddOn", "Core"), _pkg("Core"), _pkg("Patch", "AddOn", "Core"))
    assert result.order == ["Core", "AddOn", "Patch"]
    assert result.excluded == {}


def test_ties_break_by_name_without_hint():
    result = _resolve(_pkg("b"), _pkg("c"), _pkg("a"))
    assert result.order == ["a", "b", "c"]


def test_ties_break_by_previous_order_first():
    result = _resolve(_pkg("b"), _pkg("c"), _pkg("a"), _pkg("new"), previous=["c", "a", "b"])
    assert result.order == ["c", "a", "b", "new"]


def test_previous_order_never_overrides_dependencies():
    result = _resolve(_pkg("a", "b"), _pkg("b"), previous=["a", "b"])
    assert result.order == ["b", "a"]


def test_cycle_excludes_every_member_and_dependents():
    result = _resolve(_pkg("A", "B"), _pkg("B", "A"), _pkg("C", "A"), _pkg("D"))
    assert result.order == ["D"]
    assert result.excluded["A"].reason is ExclusionReason.CYCLE
    assert result.excluded["B"].reason is ExclusionReason.CYCLE
    assert result.excluded["C"].reason is ExclusionReason.DEPENDENCY_EXCLUDED


def test_self_dependency_is_a_cycle():
    result = _resolve(_pkg("Selfish", "Selfish"))
    assert result.excluded["Selfish"].reason is ExclusionReason.CYCLE


def test_cycle_member_with_ignoreLoadFailure_is_silent():
    result = _resolve(_pkg("A", "B", ignore=True), _pkg("B", "A"))
    assert result.excluded["A"].silent is True
    assert result.excluded["B"].silent is False


def test_missing_dependency_excludes_transitive_dependents_only():
    result = _resolve(_pkg("A", "Ghost"), _pkg("B", "A"), _pkg("C", "B"), _pkg("D"))
    assert result.order == ["D"]
    assert result.excluded["A"].reason is ExclusionReason.MISSING_DEPENDENCY
    assert "Ghost" in result.excluded["A"].detail
    assert result.excluded["B"].reason is ExclusionReason.DEPENDENCY_EXCLUDED
    assert result.excluded["C"].reason is ExclusionReason.DEPENDENCY_EXCLUDED


def test_ignoreLoadFailure_keeps_package_with_missing_dependency():
    result = _resolve(_pkg("A", "Ghost", ignore=True), _pkg("B", "A"))
    assert result.order == ["A", "B"]
    assert result.excluded == {}
    assert any("Ghost" in warning for warning in result.warnings)


def test_ignoreLoadFailure_dependent_survives_excluded_dependency():
    result = _resolve(_pkg("A", "Ghost"), _pkg("B", "A", ignore=True))
    assert result.order == ["B"]
    assert result.excluded["A"].reason is ExclusionReason.MISSING_DEPENDENCY


def test_conflict_excludes_the_declaring_package():
    result = _resolve(_pkg("A", conflicts=("B",)), _pkg("B"))
    assert result.order == ["B"]
    assert result.excluded["A"].reason is ExclusionReason.CONFLICT


def test_conflict_with_absent_package_is_ignored():
    result = _resolve(_pkg("A", conflicts=("Nobody",)))
    assert result.order == ["A"]


@pytest.mark.parametrize("constraint,excluded", [
    ({"exact": "1.9"}, False),
    ({"exact": "1.8"}, True),
    ({"minimum": "1.10"}, True),
    ({"maximum": "1.9.0"}, True),
    ({"minimum": "1.9", "maximum": "2.0"}, False),
    ({"minimum": "garbage"}, True),
])
def test_host_version_constraints(constraint, excluded):
    result = _resolve(_pkg("A", **constraint), host="1.9.1")
    assert ("A" in result.excluded) is excluded
    if excluded:
        assert result.excluded["A"].reason is ExclusionReason.HOST_VERSION


def test_host_version_failure_with_ignoreLoadFailure_warns():
    result = _resolve(_pkg("A", ignore=True, exact="1.0"))
    assert result.order == ["A"]
    assert len(result.warnings) == 1


def test_load_order_round_trips(tmp_path):
    path = tmp_path / "load_order.json5"
    assert readLoadOrder(path) == []
    writeLoadOrder(path, ["Core", "AddOn"])
    assert readLoadOrder(path) == ["Core", "AddOn"]


def test_unreadable_load_order_is_ignored(tmp_path):
    path = tmp_path / "load_order.json5"
    path.write_text("{not: 'a list'}", encoding="utf-8")
    assert readLoadOrder(path) == []
