from pydantic import BaseModel, Field


class RegisterForm(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1)


class LoginForm(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
