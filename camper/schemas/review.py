from pydantic import BaseModel, Field, field_validator


class ReviewFields(BaseModel):
    body: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)

    @field_validator("body", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReviewForm(BaseModel):
    review: ReviewFields
