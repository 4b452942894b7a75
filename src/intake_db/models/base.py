"""Declarative base and column mixins shared by the intake ORM models.

Every intake table is keyed by a client-generated UUID and stamps its rows
in UTC.  The mixins below carry those columns so the models only declare
what is specific to them.  ``updated_at`` on sessions is also a routing key:
the most recently touched incomplete session receives free-text answers, so
repositories set it explicitly whenever a session becomes the subject's
current one.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware now, used for every timestamp column default."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models in intake_db."""

    pass


class UUIDPrimaryKey:
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class CreatedAt:
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )


class Timestamps(CreatedAt):
    """``created_at`` plus an ``updated_at`` bumped on every ORM update."""

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
