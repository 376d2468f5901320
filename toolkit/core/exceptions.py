from typing import List, Optional
from fastapi import HTTPException, status


class ToolkitError(HTTPException):
    """
    Base error for every toolkit operation.

    The detail is the user-facing message; the status code is what
    error_json answers with when the caller does not choose one.
    """

    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.default_status, detail=message)

    @property
    def message(self) -> str:
        return self.detail

    def __str__(self) -> str:
        return self.detail


class UploadError(ToolkitError):
    """
    Upload failure. uploaded_files lists the parts written before it happened.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, uploaded_files: Optional[List] = None):
        super().__init__(message, status_code)
        self.uploaded_files = uploaded_files or []


class FileTooLargeError(UploadError):
    default_status = 413

    def __init__(self, uploaded_files: Optional[List] = None):
        super().__init__("uploaded file is too big", uploaded_files=uploaded_files)


class FileTypeNotPermittedError(UploadError):
    default_status = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    def __init__(self, content_type: str, uploaded_files: Optional[List] = None):
        super().__init__("uploaded file type is not permitted", uploaded_files=uploaded_files)
        self.content_type = content_type


class JSONBodyError(ToolkitError):
    pass


class JSONBodyTooLargeError(JSONBodyError):
    default_status = 413

    def __init__(self, max_bytes: int):
        super().__init__(f"body must not be larger than {max_bytes} bytes")
        self.max_bytes = max_bytes


class SlugError(ToolkitError):
    pass
