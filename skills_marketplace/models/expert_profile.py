"""
Subject matter expert (SME) profile read model.

Profiles are owned by the document store; this model is only ever built
from a stored document and is never written back.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Availability(Enum):
    """Expert availability shown on search results."""
    AVAILABLE = "Available"
    BUSY = "Busy"
    OFFLINE = "Offline"
    AWAY = "Away"

    @classmethod
    def parse(cls, value) -> "Availability":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OFFLINE


@dataclass(frozen=True)
class SMEProfile:
    """Denormalized expert record used by search."""
    id: str
    name: str
    email: str = ""
    roles: tuple = ()
    specializations: tuple = ()
    sectors: tuple = ()
    location: str = ""
    rating: float = 0.0
    reviews: int = 0
    availability: Availability = Availability.AVAILABLE
    verified: bool = False
    experience: str = ""
    profile_image: str = ""

    @property
    def rating_display(self) -> str:
        """Rating shown only once the expert has been reviewed."""
        if self.reviews > 0 and self.rating > 0:
            return f"{self.rating:.1f}"
        return "0.0"

    @property
    def reviews_display(self) -> str:
        noun = "review" if self.reviews == 1 else "reviews"
        return f"{self.reviews} {noun}"

    @classmethod
    def from_dict(cls, data: dict, profile_id: Optional[str] = None) -> "SMEProfile":
        """
        Build from a stored profile mapping.

        Older documents carry a single ``role`` string instead of ``roles``;
        it is read as a one-element role list.
        """
        roles = data.get("roles")
        if roles is None:
            roles = [data["role"]] if data.get("role") else []

        return cls(
            id=profile_id or data.get("id", ""),
            name=data.get("name", ""),
            email=data.get("email", ""),
            roles=tuple(roles),
            specializations=tuple(data.get("specializations") or ()),
            sectors=tuple(data.get("sectors") or ()),
            location=data.get("location", ""),
            rating=float(data.get("rating") or 0.0),
            reviews=int(data.get("reviews") or 0),
            availability=Availability.parse(data.get("availability", "Available")),
            verified=bool(data.get("verified", False)),
            experience=data.get("experience", ""),
            profile_image=data.get("profileImage", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "roles": list(self.roles),
            "specializations": list(self.specializations),
            "sectors": list(self.sectors),
            "location": self.location,
            "rating": self.rating,
            "rating_display": self.rating_display,
            "reviews": self.reviews,
            "availability": self.availability.value,
            "verified": self.verified,
            "experience": self.experience,
        }
