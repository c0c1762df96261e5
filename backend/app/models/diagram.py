"""
Diagram Models
Diagrams, their tags, and archived versions of their data.
"""

import uuid

from sqlalchemy import (
    Column, String, Text, Boolean, Integer, DateTime, Uuid, JSON, ForeignKey, Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.clock import utcnow

class Diagram(Base):
    """
    A stored diagram. `version` is bumped each time diagram_data changes,
    with the previous data archived in DiagramVersion.
    """
    __tablename__ = "diagrams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    diagram_data = Column(JSON, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    tag_rows = relationship(
        "DiagramTag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DiagramTag.tag",
    )
    owner = relationship("User", lazy="joined")

    __table_args__ = (
        Index('ix_diagrams_user_id', 'user_id'),
        Index('ix_diagrams_created_at', 'created_at'),
        Index('ix_diagrams_is_public', 'is_public'),
    )

    @property
    def tags(self):
        return sorted(row.tag for row in self.tag_rows)

    @property
    def author(self):
        return self.owner.username if self.owner else None

    def __repr__(self):
        return f"<Diagram(id={self.id}, title='{self.title}', version={self.version})>"


class DiagramTag(Base):
    __tablename__ = "diagram_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    diagram_id = Column(Uuid, ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False)
    tag = Column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint('diagram_id', 'tag', name='uq_diagram_tags_diagram_tag'),
        Index('ix_diagram_tags_tag', 'tag'),
    )


class DiagramVersion(Base):
    __tablename__ = "diagram_versions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    diagram_id = Column(Uuid, ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False)
    diagram_data = Column(JSON, nullable=False)
    change_description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        Index('ix_diagram_versions_diagram_id', 'diagram_id'),
    )
