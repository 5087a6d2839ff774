# Display labels shared by the engine reasons and the UI
COVERAGE_LABELS = {
    "general_liability": "General Liability",
    "automobile_liability": "Automobile Liability",
    "workers_compensation": "Workers' Compensation",
    "employers_liability": "Employers' Liability",
    "umbrella_excess": "Umbrella / Excess Liability",
    "professional_liability": "Professional Liability (E&O)",
    "property_insurance": "Property Insurance",
    "business_interruption": "Business Interruption",
    "liquor_liability": "Liquor Liability",
    "pollution_liability": "Pollution Liability",
    "cyber_liability": "Cyber Liability",
}

LIMIT_TYPE_LABELS = {
    "per_occurrence": "Per Occurrence",
    "aggregate": "Aggregate",
    "combined_single_limit": "Combined Single Limit",
    "statutory": "Statutory",
    "per_person": "Per Person",
    "per_accident": "Per Accident",
    "other": "Other",
}

ENTITY_TYPE_LABELS = {
    "vendor": "Vendor",
    "tenant": "Tenant",
}

ENTITY_ROLE_LABELS = {
    "certificate_holder": "Certificate Holder",
    "additional_insured": "Additional Insured",
}

STATUS_LABELS = {
    "compliant": "Compliant",
    "non-compliant": "Non-Compliant",
    "expiring": "Expiring Soon",
    "expired": "Expired",
    "not-required": "Not Required",
}

ENDORSEMENT_LABELS = {
    "additional_insured": "Additional Insured",
    "certificate_holder": "Certificate Holder",
    "waiver_of_subrogation": "Waiver of Subrogation",
    "primary_non_contributory": "Primary & Non-Contributory",
    "cancellation_notice": "Notice of Cancellation",
}
