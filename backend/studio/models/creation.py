"""Creation ORM model — a generated image or video with its owner snapshot."""
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SAEnum, Integer, JSON, String, Text
from sqlalchemy.sql import func

from studio.database import Base, utcnow


class CreationKind(str, enum.Enum):
    image = "image"
    video = "video"


class Creation(Base):
    __tablename__ = "creations"

    creation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(SAEnum(CreationKind), nullable=False, default=CreationKind.image, index=True)
    generated_url = Column(Text, nullable=False)
    original_url = Column(Text, nullable=True)
    source_image_id = Column(String(36), nullable=True, index=True)  # parent image of a derived video
    video_chain = Column(JSON, nullable=True)  # clip URLs played back to back
    prompt = Column(Text, nullable=False, default="")
    model = Column(String(150), nullable=False, index=True)
    title = Column(String(200), nullable=True)

    # Snapshot of the uploader at save time, not a live reference
    owner_id = Column(String(255), nullable=False, index=True)
    owner_name = Column(String(255), nullable=True)
    owner_email = Column(String(255), nullable=True)
    owner_avatar = Column(Text, nullable=True)

    vote_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
