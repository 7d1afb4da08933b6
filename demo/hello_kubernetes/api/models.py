from pydantic import BaseModel, Field


class Message(BaseModel):
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)


class Pong(BaseModel):
    message: str = "pong"
