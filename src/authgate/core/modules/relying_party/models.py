from pydantic import BaseModel


class RelyingPartyConfig(BaseModel):
    """WebAuthn relying party settings derived from a single request.

    Never persisted. Registration and authentication for the same logical
    domain must resolve to the same values or signature/origin checks fail.
    """

    rp_id: str
    rp_name: str
    expected_origin: str
