from ..db import Base
from sqlalchemy import Column, String
from fastapi_users.db import SQLAlchemyBaseUserTableUUID


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"
    name = Column(String, nullable=True)
