"""
Persistence store module.

This module wraps the relational store behind a small async API: user
creation and lookup, message append, and recent-history queries. All
SQLAlchemy errors are translated into chat errors at this boundary.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from common.constants import MESSAGE_HISTORY_LIMIT
from common.protocol_definitions import ChatMessage, UserIdentity, utc_now
from server.errors import ConflictError, PersistenceError
from server.storage.models import Base, MessageRecord, UserRecord
from server.utils.logger import logger


def _to_identity(record: UserRecord) -> UserIdentity:
    return UserIdentity(id=record.id, username=record.username, password_hash=record.password_hash)


def _to_message(record: MessageRecord) -> ChatMessage:
    return ChatMessage(
        id=record.id,
        user_id=record.user_id,
        username=record.username,
        text=record.message,
        created_at=record.created_at
    )


class MessageStore:
    """Async users/messages store backed by SQLAlchemy."""

    def __init__(self, database_url: str, **engine_kwargs):
        self.database_url = database_url
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init_db(self):
        """Create tables if they do not exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise PersistenceError("init_db", str(e)) from e
        logger.info(f"Database ready ({self.engine.url.render_as_string(hide_password=True)})")

    async def close(self):
        """Release pooled connections."""
        await self.engine.dispose()

    async def create_user(self, username: str, password_hash: str) -> UserIdentity:
        """Insert a user. Raises ConflictError if the username is taken."""
        record = UserRecord(username=username, password_hash=password_hash, created_at=utc_now())
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError as e:
            raise ConflictError(username) from e
        except SQLAlchemyError as e:
            raise PersistenceError("create_user", str(e)) from e
        return _to_identity(record)

    async def get_user_by_username(self, username: str) -> Optional[UserIdentity]:
        """Look up a user by exact username."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(UserRecord).where(UserRecord.username == username))
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("get_user_by_username", str(e)) from e
        return _to_identity(record) if record is not None else None

    async def append_message(self, user_id: int, username: str, text: str) -> ChatMessage:
        """Append a message to the log and return the stored row."""
        record = MessageRecord(user_id=user_id, username=username, message=text, created_at=utc_now())
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(record)
        except SQLAlchemyError as e:
            raise PersistenceError("append_message", str(e)) from e
        return _to_message(record)

    async def recent_messages(self, limit: int = MESSAGE_HISTORY_LIMIT) -> List[ChatMessage]:
        """Return the most recent `limit` messages, oldest first."""
        statement = (
            select(MessageRecord)
            .order_by(MessageRecord.created_at.desc(), MessageRecord.id.desc())
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(statement)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError("recent_messages", str(e)) from e
        return [_to_message(record) for record in reversed(records)]
