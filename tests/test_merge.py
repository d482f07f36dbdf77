"""Tests for the partial-update merge engine and override parsing."""

import pytest

from flagship_cli.errors import ValidationError
from flagship_cli.flags.merge import (
    UNSET,
    UpdateOverrides,
    build_replacement,
    parse_config_json,
    parse_overrides,
    parse_variants_json,
)
from flagship_cli.flags.models import FlagRecord, Variant


@pytest.fixture
def existing():
    return FlagRecord(
        key="checkout_v2",
        description="New checkout",
        enabled=True,
        rollout=50,
        expression='user.country == "DE"',
        config={"color": "blue"},
        variants=[Variant(name="a", weight=50), Variant(name="b", weight=50)],
        targetingRules=[{"id": "r1", "distribution": {"a": 100}}],
        env="prod",
    )


# ── build_replacement ────────────────────────────────────────────────────


class TestBuildReplacement:
    def test_no_overrides_is_identity(self, existing):
        assert build_replacement(existing, UpdateOverrides(), "prod") == existing

    def test_explicit_false_disables(self, existing):
        result = build_replacement(existing, UpdateOverrides(enabled=False), "prod")
        assert result.enabled is False
        assert result.rollout == 50
        assert result.description == "New checkout"
        assert result.config == {"color": "blue"}

    def test_untouched_enabled_survives_other_change(self, existing):
        result = build_replacement(existing, UpdateOverrides(rollout=75), "prod")
        assert result.enabled is True
        assert result.rollout == 75

    def test_explicit_true_enables(self, existing):
        disabled = existing.model_copy(update={"enabled": False})
        result = build_replacement(disabled, UpdateOverrides(enabled=True), "prod")
        assert result.enabled is True

    def test_explicit_zero_rollout(self, existing):
        result = build_replacement(existing, UpdateOverrides(rollout=0), "prod")
        assert result.rollout == 0

    def test_explicit_empty_description(self, existing):
        result = build_replacement(existing, UpdateOverrides(description=""), "prod")
        assert result.description == ""

    def test_keeps_fields_cli_cannot_set(self, existing):
        result = build_replacement(existing, UpdateOverrides(description="x"), "prod")
        assert result.targeting_rules == [{"id": "r1", "distribution": {"a": 100}}]
        assert result.variants == existing.variants
        assert result.expression == existing.expression

    def test_config_replaced_not_merged(self, existing):
        result = build_replacement(existing, UpdateOverrides(config={"size": "L"}), "prod")
        assert result.config == {"size": "L"}

    def test_config_cleared(self, existing):
        result = build_replacement(existing, UpdateOverrides(config=None), "prod")
        assert result.config is None

    def test_sets_target_env(self, existing):
        result = build_replacement(existing, UpdateOverrides(), "staging")
        assert result.env == "staging"
        assert result.key == existing.key

    def test_existing_unchanged(self, existing):
        build_replacement(existing, UpdateOverrides(enabled=False, rollout=0), "prod")
        assert existing.enabled is True
        assert existing.rollout == 50


class TestUpdateOverrides:
    def test_default_is_empty(self):
        overrides = UpdateOverrides()
        assert overrides.is_empty
        assert overrides.provided() == {}

    def test_falsy_values_are_provided(self):
        overrides = UpdateOverrides(enabled=False, rollout=0, description="")
        assert overrides.provided() == {"enabled": False, "rollout": 0, "description": ""}
        assert not overrides.is_empty

    def test_unset_repr(self):
        assert repr(UNSET) == "UNSET"
        assert repr(UpdateOverrides().enabled) == "UNSET"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"rollout": 150},
            {"rollout": -1},
            {"enabled": "yes"},
            {"config": [1, 2]},
            {"variants": [Variant(name="a", weight=60)]},
        ],
    )
    def test_constructor_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            UpdateOverrides(**kwargs)


# ── parse_overrides ──────────────────────────────────────────────────────


class TestParseOverrides:
    def test_nothing_provided(self):
        assert parse_overrides().is_empty

    def test_all_fields(self):
        overrides = parse_overrides(
            description="d",
            enabled=False,
            rollout=10,
            config_json='{"a": 1}',
            variants_json='[{"name": "x", "weight": 100}]',
            expression="true",
        )
        assert overrides.provided() == {
            "description": "d",
            "enabled": False,
            "rollout": 10,
            "config": {"a": 1},
            "variants": [Variant(name="x", weight=100)],
            "expression": "true",
        }

    def test_empty_expression_clears(self):
        assert parse_overrides(expression="").expression is None

    def test_config_null_clears(self):
        overrides = parse_overrides(config_json="null")
        assert overrides.provided() == {"config": None}

    @pytest.mark.parametrize("rollout", [-1, 101])
    def test_rollout_out_of_range(self, rollout):
        with pytest.raises(ValidationError):
            parse_overrides(rollout=rollout)

    def test_enabled_must_be_bool(self):
        with pytest.raises(ValidationError):
            parse_overrides(enabled="false")  # type: ignore[arg-type]


class TestParseJson:
    def test_malformed_config(self):
        with pytest.raises(ValidationError, match="invalid config JSON"):
            parse_config_json("{not json")

    def test_config_must_be_object(self):
        with pytest.raises(ValidationError, match="expected an object"):
            parse_config_json("[1, 2]")

    def test_variants_must_be_list(self):
        with pytest.raises(ValidationError):
            parse_variants_json('{"name": "a"}')

    def test_variant_weights_sum(self):
        with pytest.raises(ValidationError, match="sum to 100"):
            parse_variants_json('[{"name": "a", "weight": 30}, {"name": "b", "weight": 30}]')

    def test_variant_names_unique(self):
        with pytest.raises(ValidationError, match="unique"):
            parse_variants_json('[{"name": "a", "weight": 50}, {"name": "a", "weight": 50}]')

    def test_variant_missing_name(self):
        with pytest.raises(ValidationError):
            parse_variants_json('[{"weight": 100}]')

    def test_valid_variants(self):
        variants = parse_variants_json(
            '[{"name": "a", "weight": 70, "config": {"c": 1}}, {"name": "b", "weight": 30}]'
        )
        assert [v.name for v in variants] == ["a", "b"]
        assert variants[0].config == {"c": 1}
