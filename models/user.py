from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, JSON, Text
from sqlalchemy.orm import relationship

from utils.security import verify_password


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(64), nullable=False, unique=True, index=True)  # stored lower-case
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(512), nullable=False)
    cover_image = Column(String(512), nullable=True)
    password_hash = Column(String(255), nullable=False)
    # Single slot: overwritten on login/rotation, cleared on logout
    refresh_token = Column(Text, nullable=True)
    # Ordered list of watched video ids
    watch_history = Column(JSON, nullable=False, default=lambda: [])

    videos = relationship("Video", back_populates="owner", passive_deletes=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def is_password_correct(self, password: str) -> bool:
        return verify_password(password, self.password_hash)
