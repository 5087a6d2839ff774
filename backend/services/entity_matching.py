import re
from typing import Optional

from schemas.compliance import EntityMatch, EntityRole, ExtractedEntity, PropertyEntity

# Corporate suffixes that vary between a lease and a certificate
_SUFFIX_PATTERNS = [
    r"\bl\.?l\.?c\.?(?=\s|$)",
    r"\blimited liability company\b",
    r"\binc\.?(?=\s|$)",
    r"\bincorporated\b",
    r"\bcorp\.?(?=\s|$)",
    r"\bcorporation\b",
    r"\blimited\b",
    r"\bco\b",
    r"\bcompany\b",
    r"\bl\.?p\.?(?=\s|$)",
]


def normalize_entity_name(name: str) -> str:
    """Lowercase, strip punctuation and corporate suffixes"""
    if not name:
        return ""
    cleaned = name.lower()
    cleaned = re.sub(r"[,;:'\"!?()]", "", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    for pattern in _SUFFIX_PATTERNS:
        cleaned = re.sub(pattern, "", cleaned)
    cleaned = cleaned.replace(".", "")
    return re.sub(r"\s+", " ", cleaned).strip()


def entity_name_matches(required: str, actual: str) -> tuple[bool, bool]:
    """Compare a required name against a name printed on a certificate.

    Returns (matched, exact). Certificates often list several parties in one
    block ("ABC Management, Alturas Stanford LLC, 123 Main St"), so after
    normalization a substring in either direction counts, as does finding
    every significant word of the required name.
    """
    if not required or not actual:
        return False, False
    if required.strip().lower() == actual.strip().lower():
        return True, True

    r_norm = normalize_entity_name(required)
    a_norm = normalize_entity_name(actual)
    if not r_norm or not a_norm:
        return False, False
    if r_norm == a_norm:
        return True, False
    if r_norm in a_norm or a_norm in r_norm:
        return True, False

    r_words = [w for w in r_norm.split(" ") if len(w) > 1]
    if len(r_words) >= 2 and all(w in a_norm for w in r_words):
        return True, False

    return False, False


def match_property_entity(
    property_entity: PropertyEntity,
    entities: list[ExtractedEntity],
    role: Optional[EntityRole] = None,
) -> EntityMatch:
    """Find the extracted entity naming this property entity (legal name or any DBA).

    An exact match wins; otherwise the first fuzzy match in certificate order.
    """
    role = role or property_entity.entity_type
    best = None
    best_exact = False
    matched_name = None
    for candidate in entities:
        if candidate.entity_type != role:
            continue
        for name in property_entity.names:
            matched, exact = entity_name_matches(name, candidate.entity_name)
            if not matched:
                continue
            if best is None or (exact and not best_exact):
                best, best_exact, matched_name = candidate, exact, name
            break
        if best_exact:
            break

    if best is None:
        return EntityMatch(
            property_entity_id=property_entity.id,
            property_entity_name=property_entity.entity_name,
            role=role,
            found=False,
        )

    details = None
    if not best_exact:
        details = f'Matched "{best.entity_name}" (name variation)'
    if matched_name != property_entity.entity_name:
        details = f'Matched DBA "{matched_name}" as "{best.entity_name}"'
    return EntityMatch(
        property_entity_id=property_entity.id,
        property_entity_name=property_entity.entity_name,
        role=role,
        extracted_entity_id=best.id,
        extracted_entity_name=best.entity_name,
        found=True,
        exact=best_exact,
        match_details=details,
    )
