# Built-in requirement templates. Property managers start from one of these
# and adjust limits before saving their own template.
VENDOR_DEFAULT = {
    "name": "Vendor Default",
    "entity_type": "vendor",
    "description": "Standard contractor / service vendor requirements",
    "coverages": [
        {"coverage_type": "general_liability", "minimum_limit": 1000000, "limit_type": "per_occurrence",
         "requires_waiver_of_subrogation": True},
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000, "limit_type": "combined_single_limit"},
        {"coverage_type": "workers_compensation", "limit_type": "statutory"},
        {"coverage_type": "employers_liability", "minimum_limit": 500000, "limit_type": "per_accident"},
    ],
    "requires_additional_insured": True,
    "cancellation_notice_days": None,
}

# GL per occurrence / aggregate, auto, employers' liability, umbrella and
# specialty lines by tenant use type
_TENANT_USE_TYPES = {
    "office": {
        "name": "Office",
        "description": "Standard office, professional services, coworking",
        "gl": (1000000, 2000000), "auto": None, "el": 500000, "umbrella": None,
        "specialty": {},
    },
    "retail": {
        "name": "Retail",
        "description": "Retail stores, shops, showrooms, salons",
        "gl": (1000000, 2000000), "auto": 1000000, "el": 500000, "umbrella": 2000000,
        "specialty": {},
    },
    "restaurant": {
        "name": "Restaurant",
        "description": "Restaurants, bars, cafes, food halls, breweries",
        "gl": (1000000, 2000000), "auto": 1000000, "el": 1000000, "umbrella": 2000000,
        "specialty": {"liquor_liability": 1000000},
    },
    "industrial": {
        "name": "Industrial",
        "description": "Warehouses, distribution centers, light manufacturing, flex space",
        "gl": (2000000, 4000000), "auto": 1000000, "el": 1000000, "umbrella": 5000000,
        "specialty": {"pollution_liability": 1000000},
    },
    "medical": {
        "name": "Medical",
        "description": "Medical offices, dental, urgent care, clinics, labs",
        "gl": (1000000, 3000000), "auto": 1000000, "el": 1000000, "umbrella": 2000000,
        "specialty": {"professional_liability": 1000000, "cyber_liability": 1000000},
    },
    "fitness": {
        "name": "Fitness",
        "description": "Gyms, yoga studios, climbing gyms, recreation centers",
        "gl": (1000000, 3000000), "auto": None, "el": 500000, "umbrella": 2000000,
        "specialty": {"professional_liability": 1000000},
    },
}


def _tenant_preset(use_type: dict) -> dict:
    per_occurrence, aggregate = use_type["gl"]
    coverages = [
        {"coverage_type": "general_liability", "minimum_limit": per_occurrence, "limit_type": "per_occurrence",
         "requires_waiver_of_subrogation": True},
        {"coverage_type": "general_liability", "minimum_limit": aggregate, "limit_type": "aggregate"},
    ]
    if use_type["auto"]:
        coverages.append({"coverage_type": "automobile_liability", "minimum_limit": use_type["auto"],
                          "limit_type": "combined_single_limit"})
    coverages.append({"coverage_type": "workers_compensation", "limit_type": "statutory"})
    coverages.append({"coverage_type": "employers_liability", "minimum_limit": use_type["el"],
                      "limit_type": "per_accident"})
    if use_type["umbrella"]:
        coverages.append({"coverage_type": "umbrella_excess", "minimum_limit": use_type["umbrella"],
                          "limit_type": "per_occurrence"})
    # Replacement cost property and business interruption: presence only
    coverages.append({"coverage_type": "property_insurance"})
    coverages.append({"coverage_type": "business_interruption"})
    for coverage_type, minimum in use_type["specialty"].items():
        coverages.append({"coverage_type": coverage_type, "minimum_limit": minimum})
    return {
        "name": use_type["name"],
        "entity_type": "tenant",
        "description": use_type["description"],
        "coverages": coverages,
        "requires_additional_insured": True,
        "cancellation_notice_days": 30,
    }


REQUIREMENT_PRESETS = {"vendor_default": VENDOR_DEFAULT}
REQUIREMENT_PRESETS.update({f"tenant_{key}": _tenant_preset(val) for key, val in _TENANT_USE_TYPES.items()})
