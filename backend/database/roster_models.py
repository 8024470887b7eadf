"""
Nano - Roster Database Models

Four tables, all keyed by Discord user ID:
- pending: identities confirmed by the external login provider
- manual: submissions awaiting committee review
- members: verified members (authoritative)
- extras: guests from other universities
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, BigInteger, DateTime

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PendingDB(Base):
    """Login confirmed by the identity provider, waiting for the user to finish the form"""
    __tablename__ = "pending"

    discord_id = Column(BigInteger, primary_key=True, autoincrement=False)
    shortcode = Column(String(32), nullable=False)
    legal_name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class ManualDB(Base):
    """Manual verification request, one per user (last submission wins)"""
    __tablename__ = "manual"

    discord_id = Column(BigInteger, primary_key=True, autoincrement=False)
    shortcode = Column(String(32), nullable=False)
    preferred_name = Column(String(100), nullable=False)
    legal_name = Column(String(200), nullable=False)
    fresher = Column(String(20), nullable=False, default="none")
    created_at = Column(DateTime(timezone=True), default=utc_now)


class MemberDB(Base):
    """Verified member"""
    __tablename__ = "members"

    discord_id = Column(BigInteger, primary_key=True, autoincrement=False)
    shortcode = Column(String(32), nullable=False, index=True)
    preferred_name = Column(String(100), nullable=False, index=True)
    legal_name = Column(String(200), nullable=False, index=True)
    fresher = Column(String(20), nullable=False, default="none")
    created_at = Column(DateTime(timezone=True), default=utc_now)


class ExtraDB(Base):
    """Guest from another university"""
    __tablename__ = "extras"

    discord_id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False, index=True)
    university = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
