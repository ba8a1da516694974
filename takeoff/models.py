from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    client_name = Column(String)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    lines = relationship("EstimateLine", back_populates="project", cascade="all, delete-orphan")
    settings = relationship("ProjectSettings", back_populates="project", uselist=False,
                            cascade="all, delete-orphan")


class EstimateLine(Base):
    """
    One takeoff line. The full line record lives in `data`; the columns next to
    it are copies kept for ordering and filtering.
    """
    __tablename__ = "estimate_lines"
    __table_args__ = (UniqueConstraint("project_id", "line_id", name="uq_project_line_id"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    line_id = Column(String, nullable=False, index=True)
    status = Column(String, default="Active", index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, index=True)

    project = relationship("Project", back_populates="lines")


class CompanySettings(Base):
    """Single row: rate tables and markup shared by every project."""
    __tablename__ = "company_settings"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ProjectSettings(Base):
    """Per-project overrides. Any key may be missing."""
    __tablename__ = "project_settings"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), unique=True, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    project = relationship("Project", back_populates="settings")
