from enum import Enum
import uuid

from sqlalchemy import Column, String, Text, Index, Enum as SQLEnum

from gatepass.database import Base
from gatepass.database_types import GUID, UTCDateTime, utcnow


class GatepassStatus(str, Enum):
    """Valid statuses for a gatepass request"""
    PENDING_PARENT_APPROVAL = "Pending Parent Approval"
    APPROVED_BY_PARENT = "Approved by Parent"
    REJECTED_BY_PARENT = "Rejected by Parent"
    WARDEN_APPROVED = "Warden Approved"
    WARDEN_DENIED = "Warden Denied"
    COMPLETED = "Completed"


# Shared with the alembic migration so the CHECK constraint stays in sync
gatepass_status_type = SQLEnum(
    GatepassStatus,
    name="gatepass_status",
    native_enum=False,
    create_constraint=True,
    length=32,
    values_callable=lambda statuses: [status.value for status in statuses],
)


class GatepassRequest(Base):
    __tablename__ = "gatepass_requests"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)

    # Student details (immutable after creation)
    student_name = Column(String(255), nullable=False)
    roll_number = Column(String(64), nullable=False, index=True)
    student_email = Column(String(320), nullable=True)
    parent_email = Column(String(320), nullable=False)

    # Trip details
    reason = Column(Text, nullable=False)
    destination = Column(String(255), nullable=True)
    departure_date_time = Column(UTCDateTime, nullable=False)
    return_date_time = Column(UTCDateTime, nullable=True)
    duration = Column(String(64), nullable=True)  # legacy free-text field

    # Workflow
    status = Column(
        gatepass_status_type,
        nullable=False,
        default=GatepassStatus.PENDING_PARENT_APPROVAL,
    )

    # Parent decision
    parent_approved_at = Column(UTCDateTime, nullable=True)  # set on approve AND reject
    parent_rejection_reason = Column(Text, nullable=True)

    # Warden decision
    warden_approved_at = Column(UTCDateTime, nullable=True)
    warden_notes = Column(Text, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        # Dashboard listing: newest first, optionally filtered by status
        Index('idx_gatepass_status_created', 'status', 'created_at'),
    )

    def __repr__(self) -> str:
        return f"<GatepassRequest {self.id} {self.roll_number} [{self.status.value if self.status else None}]>"
