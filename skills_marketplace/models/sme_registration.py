"""
Registration draft for subject matter experts (SMEs).

Works like the SDP draft: every edit returns a new value. The CV is a
nested record whose entries are replaced by index, and each document
slot carries the date its copies were certified.
"""

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Optional

from .plan import PlanKey
from .registration import (
    OTHER,
    SECRET_FIELDS,
    Attachment,
    coerce_text_fields,
    freeze_mapping,
    text,
    toggle_value,
)

SME_ROLES = [
    "Facilitator",
    "Assessor",
    "Moderator",
    "Consultant",
    "Skills Development Coordinator",
    "Training Manager",
    OTHER,
]

SPECIALIZATIONS = [
    "Business Management",
    "Human Resources",
    "Information Technology",
    "Leadership Development",
    "Project Management",
    "Skills Development",
    "Training Design",
    "Quality Assurance",
    "Digital Literacy",
    "Communication Skills",
]

EXPERIENCE_LEVELS = ["1-2 years", "3-5 years", "6-10 years", "10+ years", "15+ years"]

NATIONAL_LOCATION = "National availability (willing to travel anywhere)"

LOCATIONS = [
    "Johannesburg, Gauteng",
    "Cape Town, Western Cape",
    "Durban, KwaZulu-Natal",
    "Pretoria, Gauteng",
    "Port Elizabeth, Eastern Cape",
    "Bloemfontein, Free State",
    "Polokwane, Limpopo",
    "Nelspruit, Mpumalanga",
    "Kimberley, Northern Cape",
    NATIONAL_LOCATION,
]

QUALIFICATION_LEVELS = [
    "Grade 12 / NQF Level 4",
    "Higher Certificate",
    "Diploma",
    "Bachelor's Degree",
    "Honours Degree",
    "Master's Degree",
    "PhD",
    "Assessor Registration",
    "Moderator Registration",
    "Facilitator Registration",
    "Industry Certification",
    OTHER,
]

LANGUAGE_PROFICIENCY = ["Basic", "Conversational", "Fluent", "Native"]


def _coerce(record_type, value):
    if isinstance(value, record_type):
        return value
    if isinstance(value, dict):
        return record_type(**value)
    raise TypeError(f"Cannot build {record_type.__name__} from {type(value).__name__}")


@dataclass(frozen=True)
class WorkExperience:
    company: str = ""
    position: str = ""
    start_date: str = ""
    end_date: str = ""
    current: bool = False
    description: str = ""

    def __post_init__(self):
        coerce_text_fields(self)


@dataclass(frozen=True)
class Language:
    language: str = ""
    proficiency: str = "Conversational"

    def __post_init__(self):
        coerce_text_fields(self)
        if self.proficiency not in LANGUAGE_PROFICIENCY:
            raise ValueError(f"proficiency must be one of {', '.join(LANGUAGE_PROFICIENCY)}")


@dataclass(frozen=True)
class Reference:
    name: str = ""
    position: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""

    def __post_init__(self):
        coerce_text_fields(self)


CV_SECTIONS = {
    "work_experience": WorkExperience,
    "languages": Language,
    "references": Reference,
}


@dataclass(frozen=True)
class CurriculumVitae:
    """CV captured alongside the document upload."""
    professional_summary: str = ""
    work_experience: tuple = ()
    languages: tuple = ()
    references: tuple = ()

    def __post_init__(self):
        coerce_text_fields(self)
        for section, record_type in CV_SECTIONS.items():
            entries = tuple(_coerce(record_type, e) for e in getattr(self, section) or ())
            object.__setattr__(self, section, entries)

    def add(self, section: str, entry=None) -> "CurriculumVitae":
        """Append an entry (blank by default) to a CV section."""
        record_type = CV_SECTIONS[section]
        entry = record_type() if entry is None else _coerce(record_type, entry)
        return replace(self, **{section: getattr(self, section) + (entry,)})

    def edit(self, section: str, index: int, **changes) -> "CurriculumVitae":
        entries = list(getattr(self, section))
        entries[index] = replace(entries[index], **changes)
        return replace(self, **{section: tuple(entries)})

    def remove(self, section: str, index: int) -> "CurriculumVitae":
        entries = list(getattr(self, section))
        del entries[index]
        return replace(self, **{section: tuple(entries)})

    def to_dict(self) -> dict:
        data = {"professional_summary": self.professional_summary}
        for section in CV_SECTIONS:
            data[section] = [
                {f.name: getattr(e, f.name) for f in fields(e)}
                for e in getattr(self, section)
            ]
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CurriculumVitae":
        return cls(**(data or {}))


# Document slot -> label used in certification messages
CERTIFIED_SLOTS = {
    "id_documents": "ID documents",
    "qualification_certs": "qualification certificates",
    "seta_certificates": "SETA certificates",
}


@dataclass(frozen=True)
class SMEDocuments:
    """Certified copies uploaded by an SME, with one certification date per slot."""
    id_documents: tuple = ()
    qualification_certs: tuple = ()
    seta_certificates: tuple = ()
    certified_on: MappingProxyType = field(default_factory=dict)  # slot -> YYYY-MM-DD

    def __post_init__(self):
        for slot in CERTIFIED_SLOTS:
            items = tuple(Attachment.coerce(a) for a in getattr(self, slot) or ())
            object.__setattr__(self, slot, tuple(a for a in items if a is not None))
        dates = freeze_mapping(self.certified_on)
        unknown = set(dates) - set(CERTIFIED_SLOTS)
        if unknown:
            raise ValueError(f"Unknown document slot: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "certified_on", dates)

    def attach(self, slot: str, attachment) -> "SMEDocuments":
        if slot not in CERTIFIED_SLOTS:
            raise KeyError(f"Unknown document slot: {slot}")
        return replace(self, **{slot: getattr(self, slot) + (Attachment.coerce(attachment),)})

    def detach(self, slot: str, index: int = 0) -> "SMEDocuments":
        """Remove one attachment; emptying a slot also clears its date."""
        if slot not in CERTIFIED_SLOTS:
            raise KeyError(f"Unknown document slot: {slot}")
        items = list(getattr(self, slot))
        del items[index]
        dates = dict(self.certified_on)
        if not items:
            dates.pop(slot, None)
        return replace(self, **{slot: tuple(items), "certified_on": dates})

    def certify(self, slot: str, certified_on: str) -> "SMEDocuments":
        if slot not in CERTIFIED_SLOTS:
            raise KeyError(f"Unknown document slot: {slot}")
        dates = dict(self.certified_on)
        dates[slot] = certified_on
        return replace(self, certified_on=dates)

    def certification_date(self, slot: str) -> str:
        return self.certified_on.get(slot, "")

    def to_dict(self) -> dict:
        data = {slot: [a.to_dict() for a in getattr(self, slot)] for slot in CERTIFIED_SLOTS}
        data["certified_on"] = dict(self.certified_on)
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SMEDocuments":
        return cls(**(data or {}))


SME_TUPLE_FIELDS = ("roles", "specializations", "sectors", "locations", "qualifications")
SME_MAPPING_FIELDS = ("qualification_specs", "seta_registrations")


@dataclass(frozen=True)
class SMERegistrationDraft:
    """In-progress SME registration data."""

    # Personal Information
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    id_number: str = ""
    password: str = ""
    confirm_password: str = ""

    # Professional Details
    roles: tuple = ()
    other_role: str = ""
    experience: str = ""
    specializations: tuple = ()
    other_specialization: str = ""
    sectors: tuple = ()
    other_sector: str = ""
    locations: tuple = ()

    # Qualifications
    qualifications: tuple = ()
    qualification_specs: MappingProxyType = field(default_factory=dict)  # qualification -> name
    other_qualification: str = ""
    seta_registrations: MappingProxyType = field(default_factory=dict)  # sector -> number

    # Rates & Availability (free text, e.g. "R450/hour")
    facilitation_rate: str = ""
    assessment_rate: str = ""
    consultation_rate: str = ""
    moderation_rate: str = ""

    # Document Upload
    cv: CurriculumVitae = field(default_factory=CurriculumVitae)
    documents: SMEDocuments = field(default_factory=SMEDocuments)
    documents_certification_confirmed: bool = False

    # Review & Subscribe
    payment_plan: PlanKey = PlanKey.NONE
    terms_accepted: bool = False

    def __post_init__(self):
        coerce_text_fields(self)
        for name in SME_TUPLE_FIELDS:
            object.__setattr__(self, name, tuple(text(v) for v in getattr(self, name) or ()))
        for name in SME_MAPPING_FIELDS:
            object.__setattr__(self, name, freeze_mapping(getattr(self, name)))
        if isinstance(self.cv, dict):
            object.__setattr__(self, "cv", CurriculumVitae.from_dict(self.cv))
        if isinstance(self.documents, dict):
            object.__setattr__(self, "documents", SMEDocuments.from_dict(self.documents))
        object.__setattr__(self, "payment_plan", PlanKey.parse(self.payment_plan))

    # --- Edits (each returns a new draft) ---

    def update(self, **changes) -> "SMERegistrationDraft":
        return replace(self, **changes)

    def toggle(self, attribute: str, value: str) -> "SMERegistrationDraft":
        """Select or deselect ``value`` in one of the multi-select fields."""
        if attribute not in SME_TUPLE_FIELDS:
            raise KeyError(f"Not a multi-select field: {attribute}")
        return replace(self, **{attribute: toggle_value(getattr(self, attribute), value)})

    def toggle_sector(self, sector: str) -> "SMERegistrationDraft":
        """Select or deselect a sector; deselecting drops its registration number."""
        registrations = dict(self.seta_registrations)
        if sector in self.sectors:
            registrations.pop(sector, None)
        return replace(self, sectors=toggle_value(self.sectors, sector), seta_registrations=registrations)

    def toggle_qualification(self, qualification: str) -> "SMERegistrationDraft":
        specs = dict(self.qualification_specs)
        if qualification in self.qualifications:
            specs.pop(qualification, None)
        return replace(
            self,
            qualifications=toggle_value(self.qualifications, qualification),
            qualification_specs=specs,
        )

    def set_qualification_spec(self, qualification: str, name: str) -> "SMERegistrationDraft":
        specs = dict(self.qualification_specs)
        specs[qualification] = name
        return replace(self, qualification_specs=specs)

    def set_seta_registration(self, sector: str, number: str) -> "SMERegistrationDraft":
        registrations = dict(self.seta_registrations)
        registrations[sector] = number
        return replace(self, seta_registrations=registrations)

    def edit_cv(self, **changes) -> "SMERegistrationDraft":
        return replace(self, cv=replace(self.cv, **changes))

    def add_cv_entry(self, section: str, entry=None) -> "SMERegistrationDraft":
        return replace(self, cv=self.cv.add(section, entry))

    def edit_cv_entry(self, section: str, index: int, **changes) -> "SMERegistrationDraft":
        return replace(self, cv=self.cv.edit(section, index, **changes))

    def remove_cv_entry(self, section: str, index: int) -> "SMERegistrationDraft":
        return replace(self, cv=self.cv.remove(section, index))

    def attach(self, slot: str, attachment) -> "SMERegistrationDraft":
        return replace(self, documents=self.documents.attach(slot, attachment))

    def detach(self, slot: str, index: int = 0) -> "SMERegistrationDraft":
        return replace(self, documents=self.documents.detach(slot, index))

    def certify(self, slot: str, certified_on: str) -> "SMERegistrationDraft":
        return replace(self, documents=self.documents.certify(slot, certified_on))

    # --- Derived values ---

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def customer_name(self) -> str:
        return self.full_name

    @property
    def customer_email(self) -> str:
        return self.email

    # --- Serialization ---

    def to_dict(self, redact: bool = False) -> dict:
        """Serialize the draft; ``redact`` drops the password fields."""
        data = {}
        for f in fields(self):
            if redact and f.name in SECRET_FIELDS:
                continue
            value = getattr(self, f.name)
            if f.name in SME_TUPLE_FIELDS:
                value = list(value)
            elif f.name in SME_MAPPING_FIELDS:
                value = dict(value)
            elif f.name in ("cv", "documents"):
                value = value.to_dict()
            elif f.name == "payment_plan":
                value = value.value
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SMERegistrationDraft":
        """Deserialize a draft; unknown keys raise ``TypeError``."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise TypeError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        return cls(**data)
