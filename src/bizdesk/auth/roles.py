"""Account roles.

Learn: Roles are a closed set. Anything read from a token or the
database that is not one of these values is rejected, never mapped
to a permissive default.
"""

import enum


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Strict lookup — raises ValueError for unknown roles."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None
