"""
Unit Tests for the Union membership API client.

Run with: pytest tests/test_membership_roster_client.py -v
"""

import httpx
import pytest

from services.membership_roster import MembershipRosterClient, RosterFetchError, find_entry

URL = "https://union.example/api/memberships"

PAYLOAD = [
    {"FirstName": "Ada", "Surname": "Lovelace", "Login": "ab1234", "OrderNo": 1234567, "Extra": "x"},
    {"FirstName": "Grace ", "Surname": " Hopper", "Login": None, "CID": "01234567", "OrderNo": "7654321"},
]


def client_for(handler) -> MembershipRosterClient:
    return MembershipRosterClient(URL, "union-key", transport=httpx.MockTransport(handler))


class TestMembershipRosterClient:

    @pytest.mark.asyncio
    async def test_fetches_and_parses_entries(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers.get("X-API-Key")
            return httpx.Response(200, json=PAYLOAD)

        entries = await client_for(handler).list_members()

        assert seen["key"] == "union-key"
        assert [e.legal_name for e in entries] == ["Ada Lovelace", "Grace Hopper"]
        assert find_entry(entries, "1234567", "AB1234") is entries[0]
        assert find_entry(entries, "7654321", "01234567") is entries[1]
        assert find_entry(entries, "7654321", "ab1234") is None
        assert find_entry(entries, "", "") is None

    @pytest.mark.asyncio
    async def test_error_status_is_fetch_error(self):
        client = client_for(lambda request: httpx.Response(500, text="down"))
        with pytest.raises(RosterFetchError, match="500"):
            await client.list_members()

    @pytest.mark.asyncio
    async def test_invalid_json_is_fetch_error(self):
        client = client_for(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RosterFetchError, match="invalid JSON"):
            await client.list_members()

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_fetch_error(self):
        client = client_for(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(RosterFetchError):
            await client.list_members()

        client = client_for(lambda request: httpx.Response(200, json=[{"FirstName": "Ada"}]))
        with pytest.raises(RosterFetchError, match="malformed"):
            await client.list_members()

    @pytest.mark.asyncio
    async def test_timeout_is_fetch_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RosterFetchError, match="timed out"):
            await client_for(handler).list_members()

    @pytest.mark.asyncio
    async def test_missing_url_is_fetch_error(self):
        with pytest.raises(RosterFetchError):
            await MembershipRosterClient("", "key").list_members()
