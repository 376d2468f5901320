from pydantic import BaseModel, Field, model_serializer
from typing import Any, Optional

class JSONEnvelope(BaseModel):
    """
    Standard wrapper for JSON responses. data is left out of the wire
    format when it is not set.
    """
    error: bool = False
    message: str = ""
    data: Optional[Any] = None

    @model_serializer(mode="wrap")
    def _omit_empty_data(self, handler):
        payload = handler(self)
        if self.data is None:
            payload.pop("data", None)
        return payload

class UploadedFile(BaseModel):
    new_file_name: str
    original_file_name: str
    file_size: int = Field(ge=0)  # bytes written to disk

class EchoRequest(BaseModel):
    foo: str = ""

class SlugRequest(BaseModel):
    text: str
