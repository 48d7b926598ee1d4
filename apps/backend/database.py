from datetime import datetime
from sqlalchemy import create_engine, Column, Integer, String, JSON, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import sessionmaker, declarative_base
from settings import settings

DATABASE_URL = settings.database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

class DutyAssignmentDB(Base):
    __tablename__ = "duty_assignments"
    __table_args__ = (UniqueConstraint("employee_id", "date", name="uq_duty_employee_date"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, index=True, nullable=False)
    full_name = Column(String, default="")
    rank = Column(String, default="")
    base = Column(String, default="")
    date = Column(Date, index=True, nullable=False)
    year = Column(Integer)
    duties = Column(JSON, default=list) # Ordered, duplicate-free duty codes e.g. ["訓練", "OD"]
    created_by = Column(String)
    updated_by = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class DutyConfigDB(Base):
    __tablename__ = "duty_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True) # e.g. "od_rotation"
    value_json = Column(JSON)

def init_db():
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
