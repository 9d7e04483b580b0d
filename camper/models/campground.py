from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from camper.core.ids import gen_id
from camper.models.base import Base, AuditMixin


class Campground(AuditMixin, Base):
    __tablename__ = "campgrounds"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("cmp"))

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(300), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # geocoded point, WGS84
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)

    # owner; set once at creation
    author_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @validates("author_id")
    def _author_is_immutable(self, key, value):
        current = self.__dict__.get("author_id")
        if current is not None and current != value:
            raise ValueError("Campground owner cannot be changed")
        return value

    @property
    def geometry(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.author_id == user_id
