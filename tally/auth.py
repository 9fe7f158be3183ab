"""API key check shared by every /kernel route."""

from fastapi import HTTPException, Header

from tally.config import settings


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.startswith("Bearer "):
        return authorization.removeprefix("Bearer ").strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the key from X-API-Key or an Authorization bearer token.

    An unset TALLY_API_KEY leaves the API open.
    """
    expected = settings.api_key
    if expected is None:
        return ""

    presented = _presented_key(x_api_key, authorization)
    if presented != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return presented
