from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, func
from coursepay.database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    instructor_name = Column(String)
    price = Column(Numeric(10, 2))                 # null means "not for sale yet"
    image_url = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    role = Column(String, default="student")        # student | professional


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchaser_id = Column(String, nullable=False, index=True)
    course_id = Column(String, nullable=False, index=True)
    # Mercado Pago payment ID; the unique constraint is the idempotency boundary
    external_payment_id = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False)         # approved
    amount = Column(Numeric(10, 2), nullable=False)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
