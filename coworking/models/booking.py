from sqlalchemy import Column, Date, Float, Integer, String, UniqueConstraint
from coworking.db import Base, UTCDateTime


class DeskBookingRow(Base):
    __tablename__ = "desk_bookings"
    __table_args__ = (UniqueConstraint("desk_id", "date", name="uq_desk_bookings_desk_date"),)

    id = Column(String, primary_key=True, index=True)
    desk_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, nullable=False)
    person_name = Column(String, nullable=True)
    title = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    currency = Column(String, nullable=True)
    schema_version = Column(Integer, nullable=False, default=2)
    created_at = Column(UTCDateTime(timezone=True), nullable=False)
