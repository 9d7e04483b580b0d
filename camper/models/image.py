from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from camper.core.ids import gen_id
from camper.models.base import Base


class Image(Base):
    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("img"))
    campground_id: Mapped[str] = mapped_column(
        String, ForeignKey("campgrounds.id", ondelete="CASCADE"), nullable=False, index=True
    )

    url: Mapped[str] = mapped_column(Text, nullable=False)
    # store-assigned; the only key used for remote deletion
    filename: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def thumbnail(self) -> str:
        return self.url.replace("/upload", "/upload/w_200", 1)
