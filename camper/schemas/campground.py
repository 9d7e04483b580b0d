from pydantic import BaseModel, Field, field_validator


class CampgroundFields(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=300)
    price: float = Field(ge=0, allow_inf_nan=False)
    description: str = Field(min_length=1)

    @field_validator("title", "location", "description", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class CampgroundForm(BaseModel):
    """Listing create/update payload (`campground[...]` form fields)."""

    campground: CampgroundFields
    deleteImages: list[str] = Field(default_factory=list)

    @field_validator("deleteImages", mode="before")
    @classmethod
    def _one_or_many(cls, v):
        if isinstance(v, str):
            return [v]
        return v


class CampgroundListItem(BaseModel):
    id: str
    title: str
    location: str
    price: float
    description: str
    thumbnail: str | None = None
    geometry: dict


class ImageOut(BaseModel):
    id: str
    url: str
    filename: str
    thumbnail: str


class ReviewOut(BaseModel):
    id: str
    body: str
    rating: int
    author_id: str
    author_username: str


class CampgroundDetail(BaseModel):
    id: str
    title: str
    location: str
    price: float
    description: str
    geometry: dict
    author_id: str
    author_username: str
    images: list[ImageOut]
    reviews: list[ReviewOut]
