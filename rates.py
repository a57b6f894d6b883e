"""
Rate configuration and city rate resolution for the bulk rate editor.

A RateConfig holds, for every priced charge category, three pricing bases
(per package, per kg, flat per bilty). Each basis has a global default and
optional per-city overrides. Zero or empty values mean "not set".
"""

import math
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

UNKNOWN_CITY = 'Unknown'

CATEGORIES = ('freight', 'labour', 'bill', 'toll', 'pf')
BASES = ('per_package', 'per_kg', 'flat')


def to_float(value: Any) -> float:
    """Parse a number leniently; anything unparseable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.replace(',', '').strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value: Any) -> int:
    return int(to_float(value))


def to_rate(value: Any) -> float:
    """Rates that are missing, unparseable or not strictly positive are 0."""
    rate = to_float(value)
    return rate if rate > 0 else 0.0


def to_flag(value: Any, default: bool = True) -> bool:
    """Parse a boolean flag; strings like "false", "0" or "no" are false."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ('false', '0', 'no', '')
    return bool(value)


def city_key(city: Optional[str]) -> str:
    """Bucket name for a destination city; empty cities group as Unknown."""
    if city is None:
        return UNKNOWN_CITY
    name = str(city).strip()
    return name or UNKNOWN_CITY


def resolve_rate(category: str, city: Optional[str], global_rate: Any,
                 city_overrides: Optional[Mapping[str, Any]]) -> float:
    """
    Effective rate of one pricing basis for a city.

    The city override wins when it is strictly positive, otherwise the
    global default is used. A result of 0 means "leave the charge alone".
    `category` only names the charge being priced.
    """
    override = to_rate((city_overrides or {}).get(city_key(city)))
    if override > 0:
        return override
    return to_rate(global_rate)


class ResolvedRate(namedtuple('ResolvedRate', BASES)):
    """Per-basis rates of one category after city fallback."""

    __slots__ = ()

    @property
    def is_set(self) -> bool:
        return any(rate > 0 for rate in self)

    @property
    def unit_rate(self) -> float:
        return self.per_package or self.per_kg

    def amount(self, packages: float, weight: float) -> float:
        return round(
            self.per_package * packages + self.per_kg * weight + self.flat, 2
        )


NO_RATE = ResolvedRate(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class RateBasis:
    default: float = 0.0
    cities: Dict[str, float] = field(default_factory=dict)

    def resolve(self, category: str, city: Optional[str]) -> float:
        return resolve_rate(category, city, self.default, self.cities)

    @property
    def is_empty(self) -> bool:
        return to_rate(self.default) == 0 and not any(
            to_rate(rate) > 0 for rate in self.cities.values()
        )

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            'default': to_rate(self.default),
            'cities': {
                city: to_rate(rate)
                for city, rate in self.cities.items()
                if to_rate(rate) > 0
            },
        }

    @classmethod
    def from_snapshot(cls, data: Any) -> 'RateBasis':
        if not isinstance(data, Mapping):
            return cls(default=to_rate(data))
        cities = data.get('cities') or {}
        if not isinstance(cities, Mapping):
            cities = {}
        return cls(
            default=to_rate(data.get('default')),
            cities={city_key(city): to_rate(rate) for city, rate in cities.items()},
        )


@dataclass(frozen=True)
class CategoryRates:
    per_package: RateBasis = field(default_factory=RateBasis)
    per_kg: RateBasis = field(default_factory=RateBasis)
    flat: RateBasis = field(default_factory=RateBasis)

    def resolve(self, category: str, city: Optional[str]) -> ResolvedRate:
        return ResolvedRate(*(getattr(self, basis).resolve(category, city) for basis in BASES))

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, basis).is_empty for basis in BASES)

    def to_snapshot(self) -> Dict[str, Any]:
        return {basis: getattr(self, basis).to_snapshot() for basis in BASES}

    @classmethod
    def from_snapshot(cls, data: Any) -> 'CategoryRates':
        if not isinstance(data, Mapping):
            return cls()
        return cls(**{basis: RateBasis.from_snapshot(data.get(basis)) for basis in BASES})


@dataclass(frozen=True)
class RateConfig:
    """Everything one bulk rate pass needs, passed explicitly to the applier."""

    freight: CategoryRates = field(default_factory=CategoryRates)
    labour: CategoryRates = field(default_factory=CategoryRates)
    bill: CategoryRates = field(default_factory=CategoryRates)
    toll: CategoryRates = field(default_factory=CategoryRates)
    pf: CategoryRates = field(default_factory=CategoryRates)
    include_pf_in_total: bool = True

    def category(self, name: str) -> CategoryRates:
        if name not in CATEGORIES:
            raise KeyError(f"Unknown charge category: {name}")
        return getattr(self, name)

    def resolve(self, category: str, city: Optional[str]) -> ResolvedRate:
        return self.category(category).resolve(category, city)

    @property
    def is_empty(self) -> bool:
        return all(self.category(name).is_empty for name in CATEGORIES)

    def to_snapshot(self) -> Dict[str, Any]:
        snapshot = {name: self.category(name).to_snapshot() for name in CATEGORIES}
        snapshot['include_pf_in_total'] = self.include_pf_in_total
        return snapshot

    @classmethod
    def from_snapshot(cls, data: Optional[Mapping[str, Any]]) -> 'RateConfig':
        """Build a config from a saved snapshot or request payload; missing keys are unset."""
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            include_pf_in_total=to_flag(data.get('include_pf_in_total')),
            **{name: CategoryRates.from_snapshot(data.get(name)) for name in CATEGORIES}
        )
