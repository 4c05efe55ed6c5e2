"""Static toll and vignette policy for supported European countries.

Prices are indicative passenger-vehicle rates in the rule's currency. The
table is built once at import time and validated so that every code maps to
exactly one rule and every vignette country declares at least one tier.
"""

from __future__ import annotations

from toll_estimator.services.types import (
    CountryRule,
    DistanceToll,
    SpecialToll,
    VignettePolicy,
    VignetteTier,
)


def _tiers(*tiers: tuple[str, float, int]) -> VignettePolicy:
    return VignettePolicy(
        required=True,
        tiers=tuple(
            VignetteTier(label=label, price=price, duration_days=days)
            for label, price, days in tiers
        ),
    )


_RULES: tuple[CountryRule, ...] = (
    CountryRule(
        code="AT",
        name="Austria",
        flag="\U0001f1e6\U0001f1f9",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(("10 days", 11.50, 10), ("2 months", 29.00, 60), ("1 year", 96.40, 365)),
        special_tolls=(
            SpecialToll("at-brenner", "Brenner Autobahn (A13)", "pass", 11.50, 47.0408, 11.5064, route="Innsbruck to Italy"),
            SpecialToll("at-tauern", "Tauern Tunnel (A10)", "tunnel", 14.00, 47.0667, 13.4833, route="Salzburg to Villach"),
            SpecialToll("at-karawanken", "Karawanken Tunnel (A11)", "tunnel", 7.90, 46.4575, 14.0750, route="Villach to Slovenia"),
            SpecialToll("at-arlberg", "Arlberg Tunnel (S16)", "tunnel", 11.50, 47.1333, 10.2167, route="Tirol to Vorarlberg"),
            SpecialToll("at-bosruck", "Bosruck Tunnel (A9)", "tunnel", 6.50, 47.5833, 14.4333, route="Linz to Graz (north)"),
            SpecialToll("at-gleinalm", "Gleinalm Tunnel (A9)", "tunnel", 9.50, 47.1333, 15.0667, route="Linz to Graz (south)"),
            SpecialToll("at-felbertauern", "Felbertauern Road", "tunnel", 12.00, 47.1167, 12.5333, route="Salzburg to East Tyrol"),
        ),
        notes="Digital vignette (GO-Maut) required. Major tunnels and Alpine passes have separate tolls.",
    ),
    CountryRule(
        code="SI",
        name="Slovenia",
        flag="\U0001f1f8\U0001f1ee",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(("7 days", 16.00, 7), ("1 month", 32.00, 30), ("1 year", 117.50, 365)),
        notes="E-vignette mandatory for motorways.",
    ),
    CountryRule(
        code="HU",
        name="Hungary",
        flag="\U0001f1ed\U0001f1fa",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(("10 days", 12.00, 10), ("1 month", 18.00, 30), ("1 year", 150.00, 365)),
        notes="E-vignette system. Valid from purchase time.",
    ),
    CountryRule(
        code="CZ",
        name="Czech Republic",
        flag="\U0001f1e8\U0001f1ff",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(("10 days", 14.00, 10), ("1 month", 20.00, 30), ("1 year", 60.00, 365)),
        notes="E-vignette for highways and expressways.",
    ),
    CountryRule(
        code="SK",
        name="Slovakia",
        flag="\U0001f1f8\U0001f1f0",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(("10 days", 12.00, 10), ("1 month", 18.00, 30), ("1 year", 60.00, 365)),
        notes="E-vignette mandatory for motorways.",
    ),
    CountryRule(
        code="CH",
        name="Switzerland",
        flag="\U0001f1e8\U0001f1ed",
        toll_model="vignette",
        currency="CHF",
        vignette=_tiers(("1 year", 40.00, 365)),
        special_tolls=(
            SpecialToll("ch-grandstbernard", "Grand St. Bernard Tunnel", "tunnel", 32.00, 45.8689, 7.1708, route="Switzerland to Italy"),
            SpecialToll("ch-munt", "Munt la Schera Tunnel", "tunnel", 26.00, 46.5167, 10.0833, route="Engadin to Livigno"),
        ),
        notes=(
            "Annual vignette only. Valid calendar year + January/February of next year. "
            "Some tunnels have separate tolls."
        ),
    ),
    CountryRule(
        code="IT",
        name="Italy",
        flag="\U0001f1ee\U0001f1f9",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.08, van=0.10, truck=0.16, average_distance_km=450),
        special_tolls=(
            SpecialToll("it-montblanc", "Mont Blanc Tunnel", "tunnel", 51.40, 45.8442, 6.9331, route="Italy to France"),
            SpecialToll("it-frejus", "Frejus Tunnel", "tunnel", 53.70, 45.1333, 6.6667, route="Italy to France"),
            SpecialToll("it-grandstbernard", "Grand St. Bernard Tunnel", "tunnel", 32.00, 45.8689, 7.1708, route="Italy to Switzerland"),
        ),
        notes="Pay-per-distance at toll booths. Major Alpine tunnels have separate high tolls.",
    ),
    CountryRule(
        code="FR",
        name="France",
        flag="\U0001f1eb\U0001f1f7",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.09, van=0.11, truck=0.18, average_distance_km=550),
        special_tolls=(
            SpecialToll("fr-montblanc", "Mont Blanc Tunnel", "tunnel", 51.40, 45.8442, 6.9331, route="France to Italy"),
            SpecialToll("fr-frejus", "Frejus Tunnel", "tunnel", 53.70, 45.1333, 6.6667, route="France to Italy"),
            SpecialToll("fr-puymorens", "Puymorens Tunnel", "tunnel", 7.30, 42.5500, 1.8167, route="France to Andorra/Spain"),
        ),
        notes="Autoroutes have toll stations. Major Alpine tunnels have separate high tolls.",
    ),
    CountryRule(
        code="ES",
        name="Spain",
        flag="\U0001f1ea\U0001f1f8",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.08, van=0.10, truck=0.16, average_distance_km=500),
        notes="Toll roads (autopistas) charged per distance. Many free alternatives exist.",
    ),
    CountryRule(
        code="HR",
        name="Croatia",
        flag="\U0001f1ed\U0001f1f7",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.05, van=0.07, truck=0.12, average_distance_km=350),
        notes="Toll stations on motorways. Cash and card accepted.",
    ),
    CountryRule(
        code="DE",
        name="Germany",
        flag="\U0001f1e9\U0001f1ea",
        toll_model="none",
        currency="EUR",
        notes="No tolls for cars and vans. Truck tolls apply (HGV only).",
    ),
    CountryRule(
        code="PL",
        name="Poland",
        flag="\U0001f1f5\U0001f1f1",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.04, van=0.06, truck=0.10, average_distance_km=400),
        notes="Toll roads mostly on A1, A2, A4. Cash and card accepted.",
    ),
    CountryRule(
        code="RO",
        name="Romania",
        flag="\U0001f1f7\U0001f1f4",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(
            ("7 days", 3.00, 7), ("30 days", 7.00, 30), ("90 days", 13.00, 90), ("1 year", 28.00, 365)
        ),
        notes="Rovigneta (e-vignette) for national roads.",
    ),
    CountryRule(
        code="BG",
        name="Bulgaria",
        flag="\U0001f1e7\U0001f1ec",
        toll_model="vignette",
        currency="EUR",
        vignette=_tiers(
            ("7 days", 10.00, 7), ("1 month", 20.00, 30), ("3 months", 35.00, 90), ("1 year", 70.00, 365)
        ),
        notes="E-vignette for all motorways and main roads.",
    ),
    CountryRule(
        code="NL",
        name="Netherlands",
        flag="\U0001f1f3\U0001f1f1",
        toll_model="none",
        currency="EUR",
        notes="No toll roads for cars. Tunnel tolls may apply in some cases.",
    ),
    CountryRule(
        code="BE",
        name="Belgium",
        flag="\U0001f1e7\U0001f1ea",
        toll_model="none",
        currency="EUR",
        notes="No toll roads for cars and vans.",
    ),
    CountryRule(
        code="PT",
        name="Portugal",
        flag="\U0001f1f5\U0001f1f9",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.06, van=0.08, truck=0.14, average_distance_km=400),
        notes="Electronic toll system on major highways.",
    ),
    CountryRule(
        code="GR",
        name="Greece",
        flag="\U0001f1ec\U0001f1f7",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.05, van=0.07, truck=0.12, average_distance_km=350),
        notes="Toll stations on national highways.",
    ),
    CountryRule(
        code="RS",
        name="Serbia",
        flag="\U0001f1f7\U0001f1f8",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=0.03, van=0.05, truck=0.09, average_distance_km=300),
        notes="Toll stations on motorways. Cash (RSD/EUR) and card accepted.",
    ),
)

# Official and local-language names as they appear at the end of geocoded addresses.
COUNTRY_NAME_TO_CODE: dict[str, str] = {
    "Austria": "AT",
    "Belgium": "BE",
    "Bulgaria": "BG",
    "Croatia": "HR",
    "Czech Republic": "CZ",
    "Czechia": "CZ",
    "France": "FR",
    "Germany": "DE",
    "Greece": "GR",
    "Hungary": "HU",
    "Italy": "IT",
    "Italia": "IT",
    "Netherlands": "NL",
    "Poland": "PL",
    "Portugal": "PT",
    "Romania": "RO",
    "Serbia": "RS",
    "Slovakia": "SK",
    "Slovenia": "SI",
    "Slovenija": "SI",
    "Spain": "ES",
    "Switzerland": "CH",
    "Schweiz": "CH",
    "Suisse": "CH",
    "Svizzera": "CH",
    "Deutschland": "DE",
    "Österreich": "AT",
    "Polska": "PL",
    "Hrvatska": "HR",
    "Magyarország": "HU",
    "Slovensko": "SK",
    "Česko": "CZ",
    "România": "RO",
    "България": "BG",
    "Ελλάδα": "GR",
    "España": "ES",
    "België": "BE",
    "Belgique": "BE",
    "Nederland": "NL",
    "Србија": "RS",
}


def _build_table(rules: tuple[CountryRule, ...]) -> dict[str, CountryRule]:
    table: dict[str, CountryRule] = {}
    toll_ids: set[str] = set()
    for rule in rules:
        if rule.code in table:
            raise ValueError(f"Duplicate country rule for {rule.code}")
        if rule.requires_vignette and not rule.vignette.tiers:
            raise ValueError(f"Vignette country {rule.code} declares no tiers")
        for toll in rule.special_tolls:
            if toll.id in toll_ids:
                raise ValueError(f"Duplicate special toll id {toll.id}")
            toll_ids.add(toll.id)
        table[rule.code] = rule
    return table


COUNTRY_RULES: dict[str, CountryRule] = _build_table(_RULES)


def get_rule(country_code: str) -> CountryRule | None:
    return COUNTRY_RULES.get(country_code.upper())


def is_supported(country_code: str | None) -> bool:
    return bool(country_code) and country_code.upper() in COUNTRY_RULES


def sorted_rules() -> list[CountryRule]:
    return sorted(COUNTRY_RULES.values(), key=lambda rule: rule.name)


def iter_special_tolls() -> list[tuple[CountryRule, SpecialToll]]:
    """Catalog of special tolls in name order, paired with the listing country."""
    return [(rule, toll) for rule in sorted_rules() for toll in rule.special_tolls]


def special_toll_ids() -> frozenset[str]:
    return frozenset(toll.id for _, toll in iter_special_tolls())


def get_special_toll(country_code: str, toll_id: str) -> SpecialToll:
    """Look up a toll in one country's list; raises ``KeyError`` if it is not there."""
    rule = get_rule(country_code)
    for toll in rule.special_tolls if rule else ():
        if toll.id == toll_id:
            return toll
    raise KeyError(f"{country_code.upper()} lists no special toll {toll_id!r}")
