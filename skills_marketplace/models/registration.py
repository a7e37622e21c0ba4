"""
Registration draft for skills development providers (SDPs).

The draft is an immutable value: every edit returns a new draft, so each
wizard transition can be validated against a snapshot that nothing else
mutates.
"""

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Optional

from .plan import PlanKey

OTHER = "Other"

ORGANIZATION_TYPES = [
    "Private Training Provider",
    "Public Training Institution",
    "University",
    "University of Technology",
    "TVET College",
    "Corporate Training Division",
    "Professional Body",
    "Industry Association",
]

SETA_SECTORS = [
    "Agricultural Sector Education and Training Authority (AgriSETA)",
    "Banking Sector Education and Training Authority (BANKSETA)",
    "Chemical Industries Education and Training Authority (CHIETA)",
    "Construction Education and Training Authority (CETA)",
    "Culture, Arts, Tourism, Hospitality and Sport Sector Education and Training Authority (CATHSSETA)",
    "Education, Training and Development Practices Sector Education and Training Authority (ETDP SETA)",
    "Energy and Water Sector Education and Training Authority (EWSETA)",
    "Fibre Processing and Manufacturing Sector Education and Training Authority (FP&M SETA)",
    "Finance and Accounting Services Sector Education and Training Authority (FASSET)",
    "Food and Beverage Manufacturing Industry Sector Education and Training Authority (FoodBev SETA)",
    "Health and Welfare Sector Education and Training Authority (HWSETA)",
    "Insurance Sector Education and Training Authority (INSETA)",
    "Local Government Sector Education and Training Authority (LGSETA)",
    "Manufacturing, Engineering and Related Services Sector Education and Training Authority (merSETA)",
    "Media, Information and Communication Technologies Sector Education and Training Authority (MICT SETA)",
    "Mining Qualifications Authority (MQA)",
    "Public Service Sector Education and Training Authority (PSETA)",
    "Safety and Security Sector Education and Training Authority (SASSETA)",
    "Services Sector Education and Training Authority (SSETA)",
    "Transport Education Training Authority (TETA)",
    "Wholesale and Retail Sector Education and Training Authority (W&RSETA)",
]

GOAL_OPTIONS = [
    "Accreditation support",
    "Learning material",
    "Facilitators",
    "Assessors",
    "Moderators",
    "We want to sell our services",
]

SERVICE_TYPES = [
    "Learnerships",
    "Skills Programmes",
    "Short Courses",
    "Assessment Services",
    "Recognition of Prior Learning (RPL)",
    "Apprenticeships",
    "Workplace-based Learning",
    "Consultation Services",
]


@dataclass(frozen=True)
class Attachment:
    """An uploaded document; storage of the bytes is external."""
    name: str
    path: Optional[str] = None
    content_type: Optional[str] = None

    @classmethod
    def coerce(cls, value) -> Optional["Attachment"]:
        """Build from an Attachment, a file name, or a mapping."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(name=value) if value else None
        if isinstance(value, dict):
            return cls(
                name=value.get("name", ""),
                path=value.get("path"),
                content_type=value.get("content_type"),
            )
        raise TypeError(f"Cannot build an attachment from {type(value).__name__}")

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path, "content_type": self.content_type}


SINGLE_SLOTS = (
    "company_registration",
    "accreditations",
    "appointment_for_verification",
    "id_for_verification",
)
MULTI_SLOTS = ("reference_letters", "additional_documents")


@dataclass(frozen=True)
class DocumentSlots:
    """Attachment slots collected in the document upload step."""
    company_registration: Optional[Attachment] = None
    accreditations: Optional[Attachment] = None
    reference_letters: tuple = ()
    appointment_for_verification: Optional[Attachment] = None
    id_for_verification: Optional[Attachment] = None
    additional_documents: tuple = ()

    def __post_init__(self):
        for name in SINGLE_SLOTS:
            object.__setattr__(self, name, Attachment.coerce(getattr(self, name)))
        for name in MULTI_SLOTS:
            items = tuple(Attachment.coerce(a) for a in getattr(self, name) or ())
            object.__setattr__(self, name, tuple(a for a in items if a is not None))

    def attach(self, slot: str, attachment) -> "DocumentSlots":
        """Return slots with ``attachment`` placed in (or appended to) ``slot``."""
        attachment = Attachment.coerce(attachment)
        if slot in MULTI_SLOTS:
            return replace(self, **{slot: getattr(self, slot) + (attachment,)})
        if slot in SINGLE_SLOTS:
            return replace(self, **{slot: attachment})
        raise KeyError(f"Unknown document slot: {slot}")

    def detach(self, slot: str, index: int = 0) -> "DocumentSlots":
        """Return slots with one attachment removed from ``slot``."""
        if slot in MULTI_SLOTS:
            items = list(getattr(self, slot))
            del items[index]
            return replace(self, **{slot: tuple(items)})
        if slot in SINGLE_SLOTS:
            return replace(self, **{slot: None})
        raise KeyError(f"Unknown document slot: {slot}")

    def to_dict(self) -> dict:
        data = {}
        for name in SINGLE_SLOTS:
            value = getattr(self, name)
            data[name] = value.to_dict() if value else None
        for name in MULTI_SLOTS:
            data[name] = [a.to_dict() for a in getattr(self, name)]
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DocumentSlots":
        data = data or {}
        known = set(SINGLE_SLOTS) | set(MULTI_SLOTS)
        return cls(**{k: v for k, v in data.items() if k in known})


TUPLE_FIELDS = ("sectors", "qualifications", "goals", "services")
SECRET_FIELDS = ("password", "confirm_password")


def text(value) -> str:
    """Coerce a form value to text; YAML and JSON hand numbers through as ints."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def freeze_mapping(value) -> MappingProxyType:
    """Read-only text-to-text copy of ``value``."""
    return MappingProxyType({text(k): text(v) for k, v in dict(value or {}).items()})


def coerce_text_fields(draft) -> None:
    """Replace non-text values of a frozen draft's ``str`` fields with text."""
    for f in fields(draft):
        if f.type is str:
            object.__setattr__(draft, f.name, text(getattr(draft, f.name)))


def toggle_value(values: tuple, value: str) -> tuple:
    if value in values:
        return tuple(v for v in values if v != value)
    return values + (value,)


@dataclass(frozen=True)
class RegistrationDraft:
    """In-progress SDP registration data."""

    # Company Information
    company_name: str = ""
    registration_number: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""

    # Contact Person
    contact_first_name: str = ""
    contact_last_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    contact_position: str = ""
    password: str = ""
    confirm_password: str = ""

    # Organization Profile
    organization_type: str = ""
    established_year: str = ""
    sectors: tuple = ()
    other_sector: str = ""
    location: str = ""
    sector_accreditations: MappingProxyType = field(default_factory=dict)  # sector -> number

    # Accreditation & Needs
    qualifications: tuple = ()
    is_accredited: str = "no"  # "yes" | "no"
    goals: tuple = ()
    other_goal: str = ""

    # Services
    services: tuple = ()
    other_service: str = ""
    learner_capacity: str = ""
    assessment_centre: bool = False

    # Providers without a track record submit an appointment letter
    # instead of reference letters.
    is_new_provider: bool = False

    documents: DocumentSlots = field(default_factory=DocumentSlots)

    # Review & Pay
    payment_plan: PlanKey = PlanKey.NONE
    terms_accepted: bool = False

    def __post_init__(self):
        if isinstance(self.is_accredited, bool):
            # YAML reads a bare yes/no as a boolean
            object.__setattr__(self, "is_accredited", "yes" if self.is_accredited else "no")
        coerce_text_fields(self)
        for name in TUPLE_FIELDS:
            object.__setattr__(self, name, tuple(text(v) for v in getattr(self, name) or ()))
        object.__setattr__(self, "sector_accreditations", freeze_mapping(self.sector_accreditations))
        object.__setattr__(self, "payment_plan", PlanKey.parse(self.payment_plan))
        if isinstance(self.documents, dict):
            object.__setattr__(self, "documents", DocumentSlots.from_dict(self.documents))
        if self.is_accredited not in ("yes", "no"):
            raise ValueError(f"is_accredited must be 'yes' or 'no', got {self.is_accredited!r}")

    # --- Edits (each returns a new draft) ---

    def update(self, **changes) -> "RegistrationDraft":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def toggle_sector(self, sector: str) -> "RegistrationDraft":
        """Select or deselect a sector, keeping the accreditation map in step."""
        accreditations = dict(self.sector_accreditations)
        if sector in self.sectors:
            accreditations.pop(sector, None)
        else:
            accreditations[sector] = ""
        return replace(
            self,
            sectors=toggle_value(self.sectors, sector),
            sector_accreditations=accreditations,
        )

    def set_sector_accreditation(self, sector: str, number: str) -> "RegistrationDraft":
        accreditations = dict(self.sector_accreditations)
        accreditations[sector] = number
        return replace(self, sector_accreditations=accreditations)

    def toggle_goal(self, goal: str) -> "RegistrationDraft":
        return replace(self, goals=toggle_value(self.goals, goal))

    def toggle_service(self, service: str) -> "RegistrationDraft":
        return replace(self, services=toggle_value(self.services, service))

    def toggle_qualification(self, qualification: str) -> "RegistrationDraft":
        return replace(self, qualifications=toggle_value(self.qualifications, qualification))

    def attach(self, slot: str, attachment) -> "RegistrationDraft":
        return replace(self, documents=self.documents.attach(slot, attachment))

    def detach(self, slot: str, index: int = 0) -> "RegistrationDraft":
        return replace(self, documents=self.documents.detach(slot, index))

    # --- Derived values ---

    @property
    def primary_sector(self) -> str:
        return self.sectors[0] if self.sectors else ""

    @property
    def customer_name(self) -> str:
        """Name billed for the plan: the company, else the contact person."""
        if self.company_name:
            return self.company_name
        return f"{self.contact_first_name} {self.contact_last_name}".strip()

    @property
    def customer_email(self) -> str:
        return self.contact_email or self.email

    # --- Serialization ---

    def to_dict(self, redact: bool = False) -> dict:
        """Serialize the draft; ``redact`` drops the password fields."""
        data = {}
        for f in fields(self):
            if redact and f.name in SECRET_FIELDS:
                continue
            value = getattr(self, f.name)
            if f.name in TUPLE_FIELDS:
                value = list(value)
            elif f.name == "sector_accreditations":
                value = dict(value)
            elif f.name == "documents":
                value = value.to_dict()
            elif f.name == "payment_plan":
                value = value.value
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RegistrationDraft":
        """Deserialize a draft; unknown keys raise ``TypeError``."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise TypeError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        return cls(**data)
