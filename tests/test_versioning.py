"""Tests for semantic version parsing and precedence."""

import pytest

from pluginkeeper.versioning import SemVer, compare_versions, is_newer, parse_version


class TestParseVersion:
    """Parsing of version strings."""

    def test_plain_version(self):
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease == ()
        assert v.build == ()

    def test_prerelease_and_build(self):
        v = parse_version("1.0.0-rc.1+build.5")
        assert v.prerelease == ("rc", "1")
        assert v.build == ("build", "5")

    def test_leading_v_is_tolerated(self):
        assert parse_version("v2.0.1") == parse_version("2.0.1")

    def test_str_round_trip(self):
        assert str(parse_version("1.0.0-alpha.1+exp.sha")) == "1.0.0-alpha.1+exp.sha"

    @pytest.mark.parametrize(
        "text",
        ["", "1", "1.2", "1.2.3.4", "01.2.3", "1.2.3-", "1.2.3-01", "a.b.c", "1.2.3+"],
    )
    def test_invalid_versions_rejected(self, text):
        with pytest.raises(ValueError, match="Invalid semantic version"):
            parse_version(text)


class TestPrecedence:
    """SemVer 2.0.0 precedence rules."""

    def test_numeric_not_lexical(self):
        assert parse_version("0.0.10") > parse_version("0.0.9")
        assert parse_version("1.10.0") > parse_version("1.9.9")

    def test_prerelease_below_release(self):
        assert parse_version("1.0.0-alpha") < parse_version("1.0.0")

    def test_spec_ordering_chain(self):
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        parsed = [parse_version(v) for v in chain]
        assert parsed == sorted(parsed)
        for lower, higher in zip(parsed, parsed[1:]):
            assert lower < higher

    def test_build_metadata_ignored(self):
        assert parse_version("1.0.0+a") == parse_version("1.0.0+b")
        assert hash(parse_version("1.0.0+a")) == hash(parse_version("1.0.0"))

    def test_sorting_versions(self):
        versions = ["0.0.2", "0.0.1", "0.1.0", "0.0.10"]
        assert sorted(versions, key=parse_version) == ["0.0.1", "0.0.2", "0.0.10", "0.1.0"]

    def test_compare_versions(self):
        assert compare_versions("1.0.0", "2.0.0") == -1
        assert compare_versions("2.0.0", "1.0.0") == 1
        assert compare_versions("1.0.0", "v1.0.0") == 0

    def test_is_newer_is_strict(self):
        assert is_newer("0.0.3", "0.0.2")
        assert not is_newer("0.0.2", "0.0.2")
        assert not is_newer("0.0.1", "0.0.2")

    def test_semver_not_comparable_to_str(self):
        assert SemVer(1, 0, 0) != "1.0.0"
        with pytest.raises(TypeError):
            SemVer(1, 0, 0) < "1.0.0"  # noqa: B015
