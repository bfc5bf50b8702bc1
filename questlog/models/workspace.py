from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from questlog.database import Base

class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)

class WorkspaceMember(Base):
    __tablename__ = "workspace_members"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(String, nullable=False, default="mentee")  # mentee, mentor, admin
    position = Column(String, nullable=True)
    planet = Column(String, nullable=True)   # Nebulae, Solaris minor, ...
    joined_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),)

class Invitation(Base):
    """Owned by the admin tooling; the quest engine only reads the status."""

    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False)
    email = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending, accepted, cancelled, expired
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)

    def effective_status(self, now: Optional[datetime] = None) -> str:
        # A pending invitation past its expiry reads as expired.
        if self.status == "pending" and self.expires_at is not None and now is not None:
            expires_at = self.expires_at
            if expires_at.tzinfo is None and now.tzinfo is not None:
                expires_at = expires_at.replace(tzinfo=now.tzinfo)
            if expires_at <= now:
                return "expired"
        return self.status
