"""
Usuarios de la plataforma (super admins, tenant admins, pacientes)
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budstack.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255))
    phone = Column(String(50))

    # SUPER_ADMIN | TENANT_ADMIN | PATIENT
    role = Column(String(20), nullable=False, default="PATIENT", index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="SET NULL"), index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # sha256 of the e-mailed reset token; the token itself is never stored
    reset_token_hash = Column(String(64), index=True)
    reset_token_expires_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="users")
