"""Tests for semantic version helpers."""

import pytest

from peerfix.versions import (
    caret,
    clean_version,
    find_best_satisfying,
    normalize_range,
    satisfies_range,
    sort_versions_desc,
)


class TestCleanVersion:
    """Test coercion of version specifiers."""

    @pytest.mark.parametrize("spec,expected", [
        ("1.2.3", "1.2.3"),
        ("^1.2.3", "1.2.3"),
        ("~2.0.0", "2.0.0"),
        ("1.2.x", "1.2.0"),
        ("v3", "3.0.0"),
        (">=1.4.0 <2.0.0", "1.4.0"),
        ("1.2.3-beta.1", "1.2.3"),
    ])
    def test_coerces_specifiers(self, spec, expected):
        assert clean_version(spec) == expected

    @pytest.mark.parametrize("spec", ["not-a-version", "latest", "", None])
    def test_returns_none_for_unparsable(self, spec):
        assert clean_version(spec) is None


class TestSatisfiesRange:
    """Test npm range matching."""

    def test_caret_range(self):
        assert satisfies_range("1.4.0", "^1.0.0")
        assert not satisfies_range("2.0.0", "^1.0.0")

    def test_version_is_coerced_first(self):
        assert satisfies_range("^1.2.3", "^1.0.0")

    def test_compound_and_union_ranges(self):
        assert satisfies_range("1.5.0", ">=1.0.0 <2.0.0")
        assert satisfies_range("3.1.0", "^2.0.0 || ^3.0.0")
        assert not satisfies_range("4.0.0", "^2.0.0 || ^3.0.0")

    @pytest.mark.parametrize("version,range_", [
        ("2.0.0", ">= 1.0.0"),
        ("18.2.0", ">= 16.8"),
        ("2.0.0", "> 1"),
        ("2.5.0", "<= 3.0.0"),
        ("2.0.4", "~ 2.0.0"),
        ("2.3.0", "^ 2.0.0"),
        ("2.0.0", ">=1.0.0  <3"),
        ("1.5.0", "1.0.0  -  2.0.0"),
    ])
    def test_loose_whitespace_ranges(self, version, range_):
        assert satisfies_range(version, range_)

    def test_loose_whitespace_still_excludes(self):
        assert not satisfies_range("3.0.0", ">= 1.0.0 < 3")
        assert not satisfies_range("1.0.0", "^ 2.0.0")

    @pytest.mark.parametrize("range_,expected", [
        (">=  1.0.0   <2", ">=1.0.0 <2"),
        ("1.0.0 - 2.0.0", "1.0.0 - 2.0.0"),
        ("^1.0.0 ||  ^ 2.0.0", "^1.0.0 || ^2.0.0"),
    ])
    def test_normalize_range(self, range_, expected):
        assert normalize_range(range_) == expected

    def test_empty_range_matches_anything(self):
        assert satisfies_range("7.0.0", "")

    def test_invalid_input_is_false(self):
        assert not satisfies_range("not-a-version", "*")
        assert not satisfies_range("1.0.0", "workspace:*")
        assert not satisfies_range("1.0.0", None)


class TestFindBestSatisfying:
    """Test picking the highest satisfying candidate."""

    def test_picks_highest_satisfying(self):
        assert find_best_satisfying(["1.9.0", "2.1.0", "2.4.0"], "^2.0.0") == "2.4.0"

    def test_uses_semver_not_lexicographic_order(self):
        assert find_best_satisfying(["2.9.0", "2.10.0", "2.2.0"], "^2.0.0") == "2.10.0"

    def test_none_when_nothing_satisfies(self):
        assert find_best_satisfying(["1.0.0", "1.1.0"], "^2.0.0") is None

    def test_ignores_unparsable_candidates(self):
        assert find_best_satisfying(["junk", "1.0.0"], "*") == "1.0.0"

    def test_adding_higher_satisfying_version_never_lowers_choice(self):
        candidates = ["2.0.0", "2.3.0"]
        before = find_best_satisfying(candidates, "^2.0.0")
        after = find_best_satisfying(candidates + ["2.5.0"], "^2.0.0")
        assert before == "2.3.0"
        assert after == "2.5.0"

    def test_invalid_range_returns_none(self):
        assert find_best_satisfying(["1.0.0"], "not a range !!") is None


def test_sort_versions_desc():
    assert sort_versions_desc(["1.0.0", "10.0.0", "junk", "2.0.0"]) == ["10.0.0", "2.0.0", "1.0.0"]


def test_caret():
    assert caret("2.4.0") == "^2.4.0"
