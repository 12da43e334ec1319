"""Tests for pattern validation, classification and invocation building."""

from unittest.mock import patch

import pytest

from qualitygate.dispatch import (
    CategoryScope,
    ComponentScope,
    FreeTextFilter,
    build_invocation,
    classify,
    discover_components,
    dispatch,
    known_components,
    validate,
)
from qualitygate.errors import InputValidationError, InvalidInputError

COMPONENTS = ("core", "cli")
CATEGORIES = {"unit": ["--lib", "--bins"], "integration": ["--test", "*"], "doc": ["--doc"]}
BASE = ("cargo", "test", "--workspace")


class TestValidate:
    """Rejection is absolute - no sanitizing."""

    @pytest.mark.parametrize(
        "pattern",
        [
            "core; rm -rf /",
            "a&&b",
            "a|b",
            "$(whoami)",
            "`id`",
            "a>out",
            "a<in",
            "name*",
            "what?",
            "a b",
            "tab\there",
            "line\nbreak",
            "quote'd",
            'dq"',
            "back\\slash",
            "#comment",
            "~/home",
            "nul\x00byte",
        ],
    )
    def test_rejects_forbidden_content(self, pattern):
        with pytest.raises(InputValidationError):
            validate(pattern)

    @pytest.mark.parametrize("pattern", ["", None])
    def test_rejects_empty(self, pattern):
        with pytest.raises(InputValidationError, match="empty"):
            validate(pattern)

    def test_rejects_option_injection(self):
        with pytest.raises(InputValidationError, match="start with '-'"):
            validate("--release")

    def test_rejects_overlong_pattern(self):
        with pytest.raises(InputValidationError, match="longer than 10"):
            validate("a" * 11, max_length=10)

    @pytest.mark.parametrize(
        "pattern", ["core", "prtip-core", "tcp_connect_timeout", "scanner::syn::test_rst", "v1.2"]
    )
    def test_accepts_plain_patterns_unchanged(self, pattern):
        assert validate(pattern) == pattern

    def test_alias_is_same_error(self):
        assert InvalidInputError is InputValidationError


class TestClassify:
    def test_component(self):
        assert classify("core", COMPONENTS, CATEGORIES) == ComponentScope("core")

    def test_category(self):
        assert classify("integration", COMPONENTS, CATEGORIES) == CategoryScope("integration")

    def test_free_text(self):
        assert classify("foo_bar", COMPONENTS, CATEGORIES) == FreeTextFilter("foo_bar")

    def test_component_wins_over_category(self):
        assert classify("unit", ("unit",), CATEGORIES) == ComponentScope("unit")

    def test_match_is_exact(self):
        assert classify("cor", COMPONENTS, CATEGORIES) == FreeTextFilter("cor")

    def test_validates_first(self):
        with pytest.raises(InputValidationError):
            classify("core;ls", COMPONENTS, CATEGORIES)


class TestBuildInvocation:
    def test_component_scope_replaces_workspace(self):
        argv = build_invocation(ComponentScope("core"), BASE, CATEGORIES)
        assert argv == ("cargo", "test", "-p", "core")

    def test_category_scope_appends_tokens(self):
        argv = build_invocation(CategoryScope("integration"), BASE, CATEGORIES)
        assert argv == ("cargo", "test", "--workspace", "--test", "*")

    def test_free_text_is_one_literal_token(self):
        argv = build_invocation(FreeTextFilter("syn::test_rst"), BASE, CATEGORIES)
        assert argv[-2:] == ("--", "syn::test_rst")
        assert all(isinstance(token, str) for token in argv)

    def test_is_pure(self):
        first = build_invocation(ComponentScope("core"), BASE, CATEGORIES)
        second = build_invocation(ComponentScope("core"), BASE, CATEGORIES)
        assert first == second
        assert BASE == ("cargo", "test", "--workspace")

    def test_unknown_classification_rejected(self):
        with pytest.raises(TypeError):
            build_invocation("core", BASE, CATEGORIES)


class TestDispatch:
    def test_builds_request(self, config):
        request = dispatch("core", config, COMPONENTS)
        assert request.classification == ComponentScope("core")
        assert request.argv == ("cargo", "test", "-p", "core")
        assert request.to_dict()["classification"] == "component"

    def test_identical_inputs_give_identical_requests(self, config):
        assert dispatch("foo_bar", config, COMPONENTS) == dispatch("foo_bar", config, COMPONENTS)

    def test_rejected_pattern_never_reaches_classify_or_build(self, config):
        with patch("qualitygate.dispatch.invocation.classify") as mock_classify, patch(
            "qualitygate.dispatch.invocation.build_invocation"
        ) as mock_build:
            with pytest.raises(InputValidationError):
                dispatch("core && curl evil", config, COMPONENTS)
        mock_classify.assert_not_called()
        mock_build.assert_not_called()


class TestComponents:
    def test_discovers_workspace_members(self, workspace):
        (workspace / "crates" / "not-a-crate").mkdir()
        assert discover_components(workspace / "crates") == ["cli", "core"]

    def test_missing_dir_gives_nothing(self, tmp_path):
        assert discover_components(tmp_path / "crates") == []

    def test_configured_components_win(self, workspace, config):
        config["components"] = ["scanner"]
        assert known_components(config, workspace) == ("scanner",)

    def test_falls_back_to_discovery(self, workspace, config):
        assert known_components(config, workspace) == ("cli", "core")
