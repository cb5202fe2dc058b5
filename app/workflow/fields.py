"""
Supplier application field catalog.

Single source of truth for:
    - the ordered form steps and which fields belong to each
    - scalar vs. file-bearing fields (single slot or bounded list slot)
    - fields required before leaving a step
    - coded enums (legal nature, entity type) and their display labels

Both the client-side workflow core and the server models read from here, so
a field added to a step is automatically persisted, validated and exposed.
"""

import re

# ── Steps ────────────────────────────────────────────────────────────────────

STEPS = (
    "Basic Information",
    "Entity Details",
    "Declarations",
    "Review Application",
)

STEP_COUNT = len(STEPS)
TERMINAL_STEP = STEP_COUNT - 1

# ── Scalar fields per step ───────────────────────────────────────────────────

STEP_SCALAR_FIELDS = {
    0: (
        "supplier_name",
        "registered_country",
        "company_registration_number",
        "company_email",
        "company_website",
        "legal_nature",
        "physical_address",
        "contact_full_name",
        "contact_relationship",
        "contact_id_passport",
        "contact_phone",
        "contact_email",
        "bank_name",
        "account_number",
        "branch",
        "currency",
        "credit_period",
    ),
    1: (
        "entity_type",
        "service_type",
        "services_description",
    ),
    2: (
        "source_of_wealth",
        "declarant_full_name",
        "declarant_capacity",
        "declarant_id_passport",
        "declaration_date",
        "consent_to_processing",
    ),
    3: (),
}

SCALAR_FIELDS = tuple(f for step in sorted(STEP_SCALAR_FIELDS) for f in STEP_SCALAR_FIELDS[step])

# Non-text scalars: never serialized as "" when unset
BOOLEAN_FIELDS = frozenset({"consent_to_processing"})
INTEGER_FIELDS = frozenset({"credit_period"})

# ── File slots ───────────────────────────────────────────────────────────────

SINGLE_FILE_SLOTS = (
    "certificate_of_incorporation",
    "kra_pin_certificate",
    "etims_proof",
    "financial_statements",
    "cr12",
    "company_profile",
    "bank_reference_letter",
    "declaration_signature_file",
)

LIST_FILE_SLOTS = (
    "directors_ids",
    "practicing_certificates",
    "key_members_resumes",
)

FILE_SLOTS = SINGLE_FILE_SLOTS + LIST_FILE_SLOTS

STEP_FILE_SLOTS = {
    0: (),
    1: (
        "certificate_of_incorporation",
        "kra_pin_certificate",
        "etims_proof",
        "financial_statements",
        "cr12",
        "company_profile",
        "bank_reference_letter",
        "directors_ids",
        "practicing_certificates",
        "key_members_resumes",
    ),
    2: ("declaration_signature_file",),
    3: (),
}

DEFAULT_MAX_FILES_PER_SLOT = 10

# File slot → document_type recorded on the uploaded SupplierDocument
SLOT_DOCUMENT_TYPES = {
    "certificate_of_incorporation": "certificate_of_incorporation",
    "kra_pin_certificate": "pin_certificate",
    "etims_proof": "etims_registration",
    "financial_statements": "audited_financials",
    "cr12": "cr12",
    "company_profile": "company_profile",
    "bank_reference_letter": "bank_reference",
    "declaration_signature_file": "source_funds_declaration",
    "directors_ids": "directors_id",
    "practicing_certificates": "practicing_certificate",
    "key_members_resumes": "key_member_resume",
}

DOCUMENT_TYPES = frozenset(SLOT_DOCUMENT_TYPES.values()) | {"data_processing_consent", "other"}

# ── Step completion rules ────────────────────────────────────────────────────

STEP_REQUIRED_FIELDS = {
    0: ("supplier_name", "legal_nature", "contact_full_name", "contact_email"),
    1: ("entity_type", "service_type"),
    2: ("source_of_wealth", "declarant_full_name", "consent_to_processing"),
    3: (),
}

EMAIL_FIELDS = frozenset({"company_email", "contact_email"})

# Contact and banking details an approved supplier may ask to change
PROFILE_UPDATE_FIELDS = (
    "company_email",
    "company_website",
    "physical_address",
    "contact_full_name",
    "contact_relationship",
    "contact_phone",
    "contact_email",
    "bank_name",
    "account_number",
    "branch",
)

# ── Coded enums ──────────────────────────────────────────────────────────────

CURRENCIES = ("KES", "USD", "EUR", "GBP")

LEGAL_NATURE_CODES = (
    "state_owned", "ngo", "foundation", "association", "company",
    "partnership", "foreign_company", "individual", "trust", "other",
)

# Display label → wire code.  Several labels collapse onto one code.
LEGAL_NATURE_LABELS = {
    "Private Limited Company": "company",
    "Public Limited Company": "company",
    "Partnership": "partnership",
    "Sole Proprietorship": "individual",
    "State Owned": "state_owned",
    "NGO": "ngo",
    "Foundation": "foundation",
    "Association": "association",
    "Foreign Company": "foreign_company",
    "Trust": "trust",
    "Other": "other",
}

# Wire code → preferred display label
LEGAL_NATURE_DISPLAY = {
    "company": "Private Limited Company",
    "partnership": "Partnership",
    "individual": "Sole Proprietorship",
    "state_owned": "State Owned",
    "ngo": "NGO",
    "foundation": "Foundation",
    "association": "Association",
    "foreign_company": "Foreign Company",
    "trust": "Trust",
    "other": "Other",
}

ENTITY_TYPE_CODES = (
    "private_company", "public_company", "partnership",
    "foreign_company", "individual", "trust", "other",
)

ENTITY_TYPE_LABELS = {
    "Public/Private Company": "private_company",
    "Limited Company": "private_company",
    "Public Limited Company": "public_company",
    "Partnership": "partnership",
    "Foreign Company": "foreign_company",
    "Individual": "individual",
    "Trust": "trust",
    "Other": "other",
}

ENTITY_TYPE_DISPLAY = {
    "private_company": "Public/Private Company",
    "public_company": "Public Limited Company",
    "partnership": "Partnership",
    "foreign_company": "Foreign Company",
    "individual": "Individual",
    "trust": "Trust",
    "other": "Other",
}

FALLBACK_LABEL = "Other"
FALLBACK_CODE = "other"

CODED_FIELDS = {
    "legal_nature": (LEGAL_NATURE_LABELS, LEGAL_NATURE_DISPLAY),
    "entity_type": (ENTITY_TYPE_LABELS, ENTITY_TYPE_DISPLAY),
}

_DIGITS = re.compile(r"\d+")


def label_to_code(field: str, label):
    """Map a display label to its wire code; unknown labels become ``other``."""
    if label is None or label == "":
        return None
    labels, display = CODED_FIELDS[field]
    if label in labels:
        return labels[label]
    # Already a code (e.g. a record loaded from an API client)
    if label in display:
        return label
    return FALLBACK_CODE


def code_to_label(field: str, code):
    """Map a wire code to a display label; unknown or legacy codes become "Other"."""
    if code is None or code == "":
        return ""
    _, display = CODED_FIELDS[field]
    return display.get(code, FALLBACK_LABEL)


def parse_credit_period(value):
    """Extract the day count from values like ``"30 Days"``.

    Returns None when there are no digits.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _DIGITS.search(str(value))
    return int(match.group()) if match else None


def step_fields(step: int) -> tuple:
    """All field names (scalars then file slots) shown on ``step``."""
    return STEP_SCALAR_FIELDS.get(step, ()) + STEP_FILE_SLOTS.get(step, ())


def is_known_field(name: str) -> bool:
    return name in SCALAR_FIELDS or name in FILE_SLOTS
