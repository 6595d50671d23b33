from datetime import datetime

from pydantic import BaseModel, Field


class StoredFile(BaseModel):
    name: str
    size: int
    modified: datetime


class RenameRequest(BaseModel):
    new_name: str = Field(alias="newName")


class FileActionResponse(BaseModel):
    message: str
    name: str
