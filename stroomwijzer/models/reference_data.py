"""
Dutch reference data: known providers, display labels and consumption baselines.
"""

ENERGY_PROVIDERS = [
    'Essent',
    'Engie',
    'Vattenfall',
    'Eneco',
    'Nuon',
    'Zonneplan',
    'GreenChoice',
    'BudgetEnergie',
    'United Consumers',
    'Pure Energie',
    'Gewoon Energie',
    'Frank Energie',
    'Tibber',
    'Vandebron',
    'Hollandsnieuwe',
]

HOUSE_TYPE_LABELS = {
    'apartment': 'Appartement',
    'townhouse': 'Rijtjeshuis',
    'single_family': 'Vrijstaande woning',
    'other': 'Anders',
}

HOUSEHOLD_SIZE_LABELS = {
    '1': '1 persoon',
    '2': '2 personen',
    '3-4': '3-4 personen',
    '5+': '5 of meer personen',
}

CONTRACT_TYPE_LABELS = {
    'fixed': 'Vast',
    'flexible': 'Variabel',
    'dynamic': 'Dynamisch',
    'unknown': 'Onbekend',
}

# kWh per month
DWELLING_BASELINES = {
    'apartment': (180, 220),
    'townhouse': (220, 260),
    'single_family': (250, 300),
    'other': (200, 260),
}

HOUSEHOLD_SIZE_MULTIPLIERS = {
    '1': 1.0,
    '2': 1.2,
    '3-4': 1.45,
    '5+': 1.7,
}

# Additive kWh per month adjustments (low, high)
WORK_FROM_HOME_ADJUSTMENT = (40, 60)
HEAT_PUMP_ADJUSTMENT = (150, 300)
DISTRICT_HEATING_ADJUSTMENT = (-40, -20)
SOLAR_PANELS_ADJUSTMENT = (-400, -100)

AVERAGE_RATE_EUR_PER_KWH = 0.45


def canonical_provider_name(name):
    """Return the known provider spelling for ``name``, or None when unknown."""
    if not name:
        return None
    key = name.replace(" ", "").lower()
    for provider in ENERGY_PROVIDERS:
        if provider.replace(" ", "").lower() == key:
            return provider
    return None
