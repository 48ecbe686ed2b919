# tests/packforge/semver/test_host_version.py
import pytest

from packforge.semver.semver import (
    HostVersion,
    HostVersionConstraint,
    matchesExactVersion,
    parseHostVersion,
)


@pytest.mark.parametrize("raw,parts", [
    ("1", (1,)),
    ("1.9", (1, 9)),
    ("1.10.2", (1, 10, 2)),
    ("1.10.2.3611", (1, 10, 2, 3611)),
    ("v1.2", (1, 2)),
    ("1.10.2-beta", (1, 10, 2)),
    ("1.10.2+build.5", (1, 10, 2)),
])
def test_parseHostVersion_valid(raw, parts):
    assert parseHostVersion(raw).parts == parts


@pytest.mark.parametrize("raw", ["", "  ", ".1", "1.", "1..3", "1.2.3.4.5", "x.y", "1.a"])
def test_parseHostVersion_invalid(raw):
    with pytest.raises(ValueError):
        parseHostVersion(raw)


def test_parseHostVersion_rejects_non_string():
    with pytest.raises(TypeError):
        parseHostVersion(1.9)  # type: ignore[arg-type]


def test_hostVersion_ordering_is_numeric():
    assert parseHostVersion("1.9") < parseHostVersion("1.10")
    assert parseHostVersion("1.9") == parseHostVersion("1.9.0")
    assert hash(parseHostVersion("1.9")) == hash(parseHostVersion("1.9.0.0"))
    assert parseHostVersion("2") > parseHostVersion("1.99.99")
    assert str(HostVersion((1, 2, 3))) == "1.2.3"


@pytest.mark.parametrize("host,required,expected", [
    ("1.9", "1.9", True),
    ("1.9.1", "1.9", True),
    ("1.9.1.3611", "1.9.1", True),
    ("1.90", "1.9", False),
    ("1.8", "1.9", False),
])
def test_matchesExactVersion(host, required, expected):
    assert matchesExactVersion(host, required) is expected


def test_constraint_empty_always_passes():
    constraint = HostVersionConstraint()
    assert constraint.isEmpty
    assert constraint.check("0.1") is None


def test_constraint_reports_first_failing_kind():
    assert HostVersionConstraint(exact="1.8").check("1.9.1")[0] == "exact"
    assert HostVersionConstraint(minimum="1.10").check("1.9.1")[0] == "min"
    assert HostVersionConstraint(maximum="1.9").check("1.9.1")[0] == "max"
    assert HostVersionConstraint(maximum="1.9.0").check("1.9.1")[0] == "max"
    assert HostVersionConstraint(minimum="1.9", maximum="1.10").check("1.9.5") is None


def test_constraint_unparseable_raises():
    with pytest.raises(ValueError):
        HostVersionConstraint(minimum="one.two").check("1.9")
