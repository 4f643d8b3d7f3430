"""
Employee model. Rows are deactivated rather than deleted so that bookings
and reports keep resolving.
"""

import enum

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from seat_booking.db.base import Base, TimestampMixin


class EmployeeRole(str, enum.Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employee(Base, TimestampMixin):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    employee_code = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default=EmployeeRole.EMPLOYEE.value)
    status = Column(String(20), nullable=False, default=EmployeeStatus.ACTIVE.value)

    bookings = relationship("Booking", back_populates="employee", lazy="raise")

    __table_args__ = (
        CheckConstraint("role IN ('employee', 'admin')", name="check_employee_role"),
        CheckConstraint("status IN ('active', 'inactive')", name="check_employee_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, code={self.employee_code}, status={self.status})>"
