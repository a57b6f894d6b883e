"""
Bulk rate application across all bilties of a bill.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List

from charges import LineItem, calculate_charges
from rates import CATEGORIES, RateConfig, ResolvedRate, city_key


def summarize_cities(items: Iterable[LineItem]) -> Dict[str, Dict[str, float]]:
    """Bilty count, packages and weight per destination city, in first-seen order."""
    cities = OrderedDict()
    for item in items:
        city = city_key(item.city)
        if city not in cities:
            cities[city] = {'count': 0, 'packages': 0, 'weight': 0.0}
        cities[city]['count'] += 1
        cities[city]['packages'] += item.packages
        cities[city]['weight'] = round(cities[city]['weight'] + item.weight, 3)
    return cities


def resolve_item_rates(item: LineItem, config: RateConfig) -> Dict[str, ResolvedRate]:
    return {category: config.resolve(category, item.city) for category in CATEGORIES}


def apply_bulk_rates(items: Iterable[LineItem], config: RateConfig) -> List[LineItem]:
    """
    Recompute charges of every item under one rate configuration.

    Returns new items in input order; the input is never modified. Items
    do not depend on each other, so the result does not depend on order.
    """
    items = list(items)
    updated = [
        calculate_charges(item, resolve_item_rates(item, config), config.include_pf_in_total)
        for item in items
    ]

    changed = sum(1 for before, after in zip(items, updated) if before != after)
    logging.info(
        f"Applied bulk rates to {len(updated)} bilties across "
        f"{len(summarize_cities(items))} cities ({changed} changed)"
    )
    return updated
