"""
Union Membership Roster Client

Fetches the full list of paid memberships for the society from the Union
API. There is no per-member lookup endpoint, so matching happens locally.

GET <UNION_API_URL>
Headers:
    X-API-Key: <UNION_API_KEY>
Response:
    [{"FirstName": ..., "Surname": ..., "Login": ..., "OrderNo": ..., "CID": ...}, ...]
"""

import logging
from typing import List, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class RosterFetchError(Exception):
    """Membership list could not be fetched or parsed (retryable)"""
    pass


class RosterEntry(BaseModel):
    """One paid membership"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: str = Field(..., alias="FirstName")
    surname: str = Field(..., alias="Surname")
    login: Optional[str] = Field(None, alias="Login")
    order_no: Union[int, str] = Field(..., alias="OrderNo")
    # Set instead of, or alongside, Login for accounts without a shortcode
    cid: Optional[str] = Field(None, alias="CID")

    @property
    def legal_name(self) -> str:
        return f"{self.first_name.strip()} {self.surname.strip()}"

    def matches(self, order: str, shortcode: str) -> bool:
        if str(self.order_no).strip() != order.strip():
            return False
        wanted = shortcode.strip().lower()
        return any(
            ident is not None and str(ident).strip().lower() == wanted
            for ident in (self.login, self.cid)
        )


def find_entry(entries: Sequence[RosterEntry], order: str, shortcode: str) -> Optional[RosterEntry]:
    """First entry matching both the order number and the shortcode (or CID)."""
    if not order.strip() or not shortcode.strip():
        return None
    return next((entry for entry in entries if entry.matches(order, shortcode)), None)


class MembershipRosterClient:
    """Client for the Union membership API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def list_members(self) -> List[RosterEntry]:
        """
        Fetch every membership for the current year.

        Raises:
            RosterFetchError: network failure, non-2xx status or malformed body
        """
        if not self.url:
            raise RosterFetchError("Union API URL is not configured")

        headers = {"X-API-Key": self.api_key, "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.error("Union API request timed out")
            raise RosterFetchError("Union API request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Union API returned {e.response.status_code}")
            raise RosterFetchError(f"Union API returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Union API request error: {e}")
            raise RosterFetchError(f"Union API request error: {e}") from e
        except ValueError as e:
            logger.error(f"Union API returned invalid JSON: {e}")
            raise RosterFetchError("Union API returned invalid JSON") from e

        if not isinstance(payload, list):
            raise RosterFetchError("Union API returned an unexpected payload")

        try:
            entries = [RosterEntry.model_validate(item) for item in payload]
        except ValidationError as e:
            logger.error(f"Union API returned malformed entries: {e.error_count()} errors")
            raise RosterFetchError("Union API returned malformed entries") from e

        logger.info(f"Fetched {len(entries)} memberships from the Union API")
        return entries
