"""Account records returned by the identity provider."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(Enum):
    """Marketplace account roles."""

    SME = "SME"      # Subject matter expert
    SDP = "SDP"      # Skills development provider
    ADMIN = "Admin"  # Platform administrator

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a role or its value in any case (``sme``, ``SME``)."""
        if isinstance(value, cls):
            return value
        for role in cls:
            if role.value.lower() == str(value).strip().lower():
                return role
        raise ValueError(f"Unknown role: {value!r}")

    @property
    def dashboard_path(self) -> str:
        """Destination after sign-in or registration."""
        paths = {
            Role.SME: "/sme-dashboard",
            Role.SDP: "/sdp-dashboard",
            Role.ADMIN: "/admin-dashboard",
        }
        return paths[self]


@dataclass
class UserRecord:
    """A signed-in account merged with its stored profile document."""
    id: str
    email: str
    role: Role
    verified: bool = False
    profile: dict = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.profile.get("name") or self.email

    @classmethod
    def from_document(
        cls,
        account_id: str,
        document: dict,
        claims: Optional[dict] = None,
    ) -> "UserRecord":
        """
        Merge a stored user document with the session's custom claims.

        Claims win over the document for role and verification.
        """
        claims = claims or {}
        role = claims.get("role") or document.get("role") or Role.SME.value
        verified = claims["verified"] if "verified" in claims else document.get("verified", False)
        return cls(
            id=account_id,
            email=document.get("email", ""),
            role=Role(role),
            verified=bool(verified),
            profile=dict(document.get("profile") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "verified": self.verified,
            "profile": self.profile,
        }
