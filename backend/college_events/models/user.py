"""
User model. Owned by the identity collaborator; the booking core only reads
`id` and `role`.
"""

from sqlalchemy import Column, Integer, String, CheckConstraint

from college_events.db.base import Base, TimestampMixin
from college_events.models.status import UserRole, sql_values


class User(Base, TimestampMixin):
    __tablename__ = "users"

    # Assigned by the identifier allocator
    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    credential_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.student.value)

    __table_args__ = (
        CheckConstraint(f"role IN ({sql_values(UserRole)})", name="check_user_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
