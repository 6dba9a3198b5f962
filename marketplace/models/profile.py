# marketplace/models/profile.py
from sqlalchemy import Column, String

from marketplace.database import Base
from marketplace.models.mixins import TimestampMixin


class Profile(Base, TimestampMixin):
    """
    Public profile of a marketplace member.
    The id is linked to Supabase auth.users.id
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    user_type = Column(String(20), nullable=False, default="buyer")
    business_name = Column(String(100), nullable=True)

    def __repr__(self):
        return f"<Profile {self.id} - {self.user_type}>"
