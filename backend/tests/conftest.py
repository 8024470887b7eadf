"""
Shared fixtures: a roster store on a temporary SQLite file and in-memory
fakes for the Discord collaborators.
"""

from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from database import build_engine, create_tables
from roster import RosterStore
from verify import NotificationError, RoleGatewayError, RoleIds, VerifyDispatcher

ROLES = RoleIds(
    member=1001,
    non_member=1002,
    old_member=1003,
    undergraduate_fresher=1004,
    postgraduate_fresher=1005,
)

USER_ID = 80351110224678912
REVIEWER_ID = 90351110224678912


class FakeMember:
    """MemberHandle that keeps roles in a set."""

    def __init__(self, identity: int = USER_ID, roles=(), fail_roles=()):
        self.id = identity
        self.name = f"user{identity}"
        self.mention = f"<@{identity}>"
        self.avatar_url = None
        self.roles = set(roles)
        self.fail_roles = set(fail_roles)
        self.added: List[int] = []
        self.removed: List[int] = []

    async def add_role(self, role_id: int) -> None:
        if role_id in self.fail_roles:
            raise RoleGatewayError(f"cannot add {role_id}")
        self.added.append(role_id)
        self.roles.add(role_id)

    async def remove_role(self, role_id: int) -> None:
        if role_id in self.fail_roles:
            raise RoleGatewayError(f"cannot remove {role_id}")
        self.removed.append(role_id)
        self.roles.discard(role_id)

    async def has_role(self, role_id: int) -> bool:
        return role_id in self.roles


class FakeNotifier:
    """Records posts instead of sending them."""

    def __init__(self, fail_audit: bool = False, fail_welcome: bool = False):
        self.audits: List[Tuple[object, Optional[list]]] = []
        self.welcomes: List[str] = []
        self.members: Dict[int, FakeMember] = {}
        self.fail_audit = fail_audit
        self.fail_welcome = fail_welcome

    async def send_audit(self, card, buttons=None) -> None:
        if self.fail_audit:
            raise NotificationError("audit channel unavailable")
        self.audits.append((card, buttons))

    async def send_welcome(self, content: str) -> None:
        if self.fail_welcome:
            raise NotificationError("general channel unavailable")
        self.welcomes.append(content)

    async def fetch_member(self, identity: int) -> Optional[FakeMember]:
        return self.members.get(identity)


@pytest_asyncio.fixture
async def store(tmp_path):
    """Roster store on a fresh SQLite file (file-backed so sessions can run concurrently)."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'roster.db'}")
    await create_tables(engine)
    yield RosterStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


@pytest.fixture
def member():
    return FakeMember()


@pytest.fixture
def notifier(member):
    notifier = FakeNotifier()
    notifier.members[member.id] = member
    return notifier


@pytest.fixture
def roster_client():
    client = AsyncMock()
    client.list_members = AsyncMock(return_value=[])
    return client


@pytest.fixture
def dispatcher(store, notifier, roster_client):
    return VerifyDispatcher.build(
        store=store,
        notifier=notifier,
        roles=ROLES,
        roster_client=roster_client,
        login_url=lambda identity: f"https://login.example/verify?id={identity}",
        contact="<@42>",
    )


@pytest.fixture
def session(dispatcher):
    return dispatcher.session
