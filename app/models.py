from sqlalchemy import Column, Integer, String, Text
from app.db import Base

# 1. Cached day windows (raw "HH:MM" strings, validated on evaluation)
class BusinessHours(Base):
    __tablename__ = "business_hours"
    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String, index=True)   # "restaurant" / "car_wash" / ...
    position = Column(Integer)             # unit order in the fetched document
    day = Column(String)                   # "Monday".."Sunday" or "default"
    open_time = Column(String)
    close_time = Column(String)

# 2. Emergency / advisory line per unit
class UnitAdvisory(Base):
    __tablename__ = "unit_advisory"
    id = Column(Integer, primary_key=True, index=True)
    unit_id = Column(String, index=True)
    position = Column(Integer)
    emergency = Column(Text)
