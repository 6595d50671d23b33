from pydantic import BaseModel, Field


class IntroRequest(BaseModel):
    sound_name: str = Field(alias="soundName")


class IntroResponse(BaseModel):
    message: str
    sound_name: str = Field(serialization_alias="soundName")
    effect: str
