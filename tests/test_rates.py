"""
Unit tests for lenient parsing, city rate resolution and RateConfig snapshots.
"""

import pytest

from rates import (UNKNOWN_CITY, CategoryRates, RateBasis, RateConfig, ResolvedRate,
                   city_key, resolve_rate, to_flag, to_float, to_int, to_rate)


class TestLenientParsing:

    @pytest.mark.parametrize('value, expected', [
        (None, 0.0), ('', 0.0), ('abc', 0.0), ('12.5', 12.5), (' 7 ', 7.0),
        ('1,200', 1200.0), (3, 3.0), (float('nan'), 0.0), ([], 0.0),
    ])
    def test_to_float(self, value, expected):
        assert to_float(value) == expected

    def test_to_int_truncates(self):
        assert to_int('10.7') == 10
        assert to_int(None) == 0

    @pytest.mark.parametrize('value, expected', [
        (None, True), (True, True), (False, False), ('false', False), (' No ', False),
        ('0', False), ('', False), ('yes', True), (0, False),
    ])
    def test_to_flag(self, value, expected):
        assert to_flag(value) is expected

    def test_non_positive_rates_are_zero(self):
        assert to_rate(-5) == 0.0
        assert to_rate('0') == 0.0
        assert to_rate('4.5') == 4.5


class TestCityKey:

    def test_empty_city_is_unknown(self):
        assert city_key(None) == UNKNOWN_CITY
        assert city_key('  ') == UNKNOWN_CITY

    def test_city_is_trimmed(self):
        assert city_key(' Delhi ') == 'Delhi'


class TestResolveRate:

    def test_city_override_wins_over_zero_global(self):
        assert resolve_rate('labour', 'Delhi', 0, {'Delhi': 5}) == 5

    def test_zero_city_override_falls_back_to_global(self):
        assert resolve_rate('labour', 'Delhi', 5, {'Delhi': 0}) == 5

    def test_unknown_city_uses_global(self):
        assert resolve_rate('labour', 'Agra', 5, {}) == 5

    def test_empty_override_string_is_not_set(self):
        assert resolve_rate('freight', 'Delhi', 2, {'Delhi': ''}) == 2

    def test_nothing_set_means_no_change(self):
        assert resolve_rate('freight', 'Delhi', None, None) == 0

    def test_missing_city_matches_unknown_bucket_override(self):
        assert resolve_rate('toll', None, 1, {UNKNOWN_CITY: 9}) == 9


class TestCategoryRates:

    def test_bases_resolve_independently(self):
        pf = CategoryRates(
            per_package=RateBasis(default=2),
            per_kg=RateBasis(default=0, cities={'Delhi': 0.5}),
            flat=RateBasis(default=10, cities={'Delhi': 15}),
        )
        assert pf.resolve('pf', 'Delhi') == ResolvedRate(2, 0.5, 15)
        assert pf.resolve('pf', 'Jaipur') == ResolvedRate(2, 0, 10)

    def test_resolved_amount_is_additive(self):
        rates = ResolvedRate(per_package=2, per_kg=0.5, flat=15)
        assert rates.amount(packages=10, weight=100) == pytest.approx(85.0)

    def test_unit_rate_prefers_per_package(self):
        assert ResolvedRate(3, 1, 0).unit_rate == 3
        assert ResolvedRate(0, 1.5, 0).unit_rate == 1.5

    def test_resolved_rate_has_no_instance_dict(self):
        assert not hasattr(ResolvedRate(1, 0, 0), '__dict__')


class TestRateConfig:

    def test_default_config_is_empty(self):
        assert RateConfig().is_empty

    def test_unknown_category_raises(self):
        with pytest.raises(KeyError):
            RateConfig().category('gst')

    def test_snapshot_restores_same_config(self):
        config = RateConfig(
            freight=CategoryRates(per_kg=RateBasis(default=4, cities={'Delhi': 6})),
            toll=CategoryRates(flat=RateBasis(default=20)),
            include_pf_in_total=False,
        )
        assert RateConfig.from_snapshot(config.to_snapshot()) == config

    def test_snapshot_drops_unset_city_overrides(self):
        basis = RateBasis(default=1, cities={'Delhi': 0, 'Agra': 2})
        assert basis.to_snapshot() == {'default': 1, 'cities': {'Agra': 2}}

    def test_from_snapshot_tolerates_partial_payload(self):
        config = RateConfig.from_snapshot({
            'labour': {'per_package': {'default': '2', 'cities': {'Delhi': '3'}}},
            'pf': {'flat': 5},
            'include_pf_in_total': 'false',
        })
        assert config.labour.per_package == RateBasis(default=2.0, cities={'Delhi': 3.0})
        assert config.pf.flat.default == 5.0
        assert config.freight.is_empty
        assert config.include_pf_in_total is False

    def test_from_snapshot_of_garbage_is_empty(self):
        assert RateConfig.from_snapshot(None).is_empty
        assert RateConfig.from_snapshot({'freight': 'x'}).is_empty
