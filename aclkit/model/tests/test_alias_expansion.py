"""Tests for alias graph expansion and cycle detection."""

import pytest

from aclkit.errors import (
    AliasCycleError,
    ShadowedCapabilityError,
    UndefinedAliasTargetError,
    UnknownCapabilityError,
)
from aclkit.model import Model, expand_aliases


class TestExpandAliases:
    """Tests for the depth-first expansion over one resource."""

    def test_flat_alias(self):
        result = expand_aliases("doc", {"read", "list"}, {"browse": ("read", "list")})
        assert result == {"browse": frozenset({"read", "list"})}

    def test_nested_aliases(self):
        result = expand_aliases(
            "doc",
            {"read", "list", "write"},
            {
                "editor": ("viewer", "write"),
                "viewer": ("read", "list"),
            },
        )
        assert result["editor"] == {"read", "list", "write"}
        assert result["viewer"] == {"read", "list"}

    def test_forward_reference(self):
        """Aliases may reference aliases declared after them."""
        result = expand_aliases(
            "doc",
            {"read"},
            {"a": ("b",), "b": ("c",), "c": ("read",)},
        )
        assert result["a"] == {"read"}

    def test_diamond_is_not_a_cycle(self):
        """Reaching one alias through two routes is fine."""
        result = expand_aliases(
            "doc",
            {"read", "write"},
            {
                "top": ("left", "right"),
                "left": ("base",),
                "right": ("base", "write"),
                "base": ("read",),
            },
        )
        assert result["top"] == {"read", "write"}

    def test_self_reference_to_shadowed_capability(self):
        result = expand_aliases("book", {"read", "list"}, {"read": ("read", "list")})
        assert result["read"] == {"read", "list"}

    def test_self_reference_without_capability_is_cycle(self):
        with pytest.raises(AliasCycleError) as exc_info:
            expand_aliases("doc", {"read"}, {"loop": ("loop", "read")})
        assert exc_info.value.cycle == ["loop", "loop"]

    def test_two_alias_cycle(self):
        with pytest.raises(AliasCycleError) as exc_info:
            expand_aliases("doc", {"read"}, {"a": ("b",), "b": ("a",)})
        assert exc_info.value.resource == "doc"
        assert exc_info.value.cycle == ["a", "b", "a"]

    def test_cycle_reported_from_entry_point(self):
        with pytest.raises(AliasCycleError) as exc_info:
            expand_aliases(
                "doc",
                {"read"},
                {"entry": ("a",), "a": ("b",), "b": ("c",), "c": ("a",)},
            )
        assert exc_info.value.cycle == ["a", "b", "c", "a"]

    def test_undefined_target(self):
        with pytest.raises(UndefinedAliasTargetError) as exc_info:
            expand_aliases("doc", {"read"}, {"viewer": ("read", "peek")})
        assert exc_info.value.alias == "viewer"
        assert exc_info.value.target == "peek"

    def test_alias_hiding_capability_rejected(self):
        with pytest.raises(ShadowedCapabilityError) as exc_info:
            expand_aliases("doc", {"a", "b"}, {"a": ("b",)})
        assert exc_info.value.name == "a"
        assert exc_info.value.resource == "doc"


class TestModelExpansion:
    """Tests for expansion through a validated Model."""

    @pytest.fixture
    def model(self) -> Model:
        model = Model()
        model.define_resource("book") \
            .capabilities("read", "write", "list") \
            .alias("read", "read", "list") \
            .alias("write", "write", "read", "list")
        return model.validate()

    def test_alias_takes_precedence_over_capability(self, model):
        assert model.expand("book", ["read"]) == {"read", "list"}

    def test_plain_capability(self, model):
        assert model.expand("book", ["list"]) == {"list"}

    def test_expansion_is_idempotent(self, model):
        once = model.expand("book", ["write"])
        assert model.expand("book", once) == once

    def test_pure_capability_set_unchanged(self, model):
        assert model.expand("book", {"list"}) == {"list"}

    def test_unknown_name(self, model):
        with pytest.raises(UnknownCapabilityError) as exc_info:
            model.expand("book", ["delete"])
        assert exc_info.value.resource == "book"
        assert exc_info.value.name == "delete"

    def test_expansions_are_memoized(self, model):
        definition = model.resource("book")
        assert definition.expand("write") is definition.expand("write")

    def test_expand_validates_implicitly(self):
        model = Model()
        model.define_resource("doc").capabilities("read").alias("view", "read")
        assert model.expand("doc", ["view"]) == {"read"}
        assert model.validated
