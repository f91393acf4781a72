"""Case, team and tool models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from casevault_api.db.base import Base


class Case(Base):
    """Forensic investigation case."""

    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, index=True)
    case_number = Column(String(50), nullable=False, unique=True, index=True)
    case_name = Column(String(255), nullable=False)
    case_type = Column(String(255), nullable=True)
    priority = Column(String(50), nullable=False, default="Medium")  # Low, Medium, High, Critical
    status = Column(String(50), nullable=False, default="Open", index=True)  # Open, In Progress, Closed
    start_date = Column(Date, nullable=True)
    lead_investigator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    overview = Column(Text, nullable=True)
    findings = Column(Text, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    lead_investigator = relationship("User", foreign_keys=[lead_investigator_id])
    client = relationship("User", foreign_keys=[client_id])
    team_members = relationship("CaseTeamMember", back_populates="case")
    tools = relationship("CaseTool", back_populates="case", order_by="CaseTool.created_at")


class CaseTeamMember(Base):
    """Investigator assigned to a case team."""

    __tablename__ = "case_team_members"

    case_id = Column(Integer, ForeignKey("cases.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    case = relationship("Case", back_populates="team_members")
    user = relationship("User")


class CaseTool(Base):
    """Forensic tool used on a case."""

    __tablename__ = "case_tools"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    tool_name = Column(String(255), nullable=False)
    tool_version = Column(String(100), nullable=True)
    purpose = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    case = relationship("Case", back_populates="tools")
