"""
Redirect References

A removal targets one of two different things:
- a persisted scheduled redirect (by record id)
- an ad-hoc override living only in account config (by sector + destination)
"""

from dataclasses import dataclass

from chat_redirects.errors import BadRequestError

OVERRIDE_KEY_SEPARATOR = ":"


@dataclass(frozen=True)
class ScheduledRedirectRef:
    redirect_id: str


@dataclass(frozen=True)
class OverrideRef:
    sector_code: str
    destination_user_id: str

    @property
    def key(self) -> str:
        return f"{self.sector_code}{OVERRIDE_KEY_SEPARATOR}{self.destination_user_id}"


RedirectRef = ScheduledRedirectRef | OverrideRef


def parse_override_key(raw_key: str) -> OverrideRef:
    """
    Parse a "sectorCode:destinationUserId" key.

    Only the first separator splits the key; destination ids may contain ":".

    Raises:
        BadRequestError: if the separator is missing or either part is empty
    """
    sector_code, separator, destination_user_id = raw_key.partition(OVERRIDE_KEY_SEPARATOR)
    if not separator or not sector_code.strip() or not destination_user_id.strip():
        raise BadRequestError(
            f"Malformed override key '{raw_key}', expected 'sectorCode:destinationUserId'",
            code="MALFORMED_OVERRIDE_KEY",
        )
    return OverrideRef(sector_code=sector_code.strip(), destination_user_id=destination_user_id.strip())


def parse_redirect_ref(raw_id: str, scheduled: bool) -> RedirectRef:
    """Build the reference the caller meant from an id and the scheduled flag."""
    if scheduled:
        if not raw_id.strip():
            raise BadRequestError("Empty redirect id", code="MALFORMED_REDIRECT_ID")
        return ScheduledRedirectRef(redirect_id=raw_id.strip())
    return parse_override_key(raw_id)
