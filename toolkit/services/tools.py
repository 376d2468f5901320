import json
import logging
import os
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Type, TypeVar, Union
import aiofiles
import httpx
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from toolkit.api.schemas import JSONEnvelope, UploadedFile
from toolkit.core.config import ToolkitConfig
from toolkit.core.exceptions import (
    FileTooLargeError,
    FileTypeNotPermittedError,
    ToolkitError,
    UploadError,
)
from toolkit.utils import file_utils
from toolkit.utils.content_type import SNIFF_LENGTH, content_type_allowed, detect_content_type
from toolkit.utils.json_utils import decode_json_body, read_limited_body

logger = logging.getLogger(__name__)

T = TypeVar("T")

COPY_CHUNK_SIZE = 1024 * 1024  # 1MB chunks when persisting uploads

class Tools:
    """
    Helpers for request handlers: uploads, JSON bodies and responses,
    forced downloads, random strings and slugs.

    Every operation reads its limits from the shared ToolkitConfig, which
    may be changed between calls.
    """

    def __init__(self, config: Optional[ToolkitConfig] = None):
        self.config = config or ToolkitConfig()

    def random_string(self, n: int) -> str:
        return file_utils.random_string(n)

    def slugify(self, s: str) -> str:
        return file_utils.slugify(s)

    def create_dir_if_not_exists(self, path: Union[str, Path]) -> Path:
        return file_utils.ensure_directory_exists(path)

    async def upload_file(self, request: Request, upload_dir: Union[str, Path], rename: bool = True) -> UploadedFile:
        """
        Persist the first file part of a multipart request.
        """
        files = await self.upload_files(request, upload_dir, rename=rename)
        if not files:
            raise UploadError("no file was uploaded")
        return files[0]

    async def upload_files(self, request: Request, upload_dir: Union[str, Path], rename: bool = True) -> List[UploadedFile]:
        """
        Persist every file part of a multipart request under upload_dir.

        Each part's type is sniffed from its first bytes and checked against
        the allow-list before anything is written. Files written before a
        failure stay on disk and are listed on the raised UploadError.
        """
        upload_dir = self.create_dir_if_not_exists(upload_dir)
        max_size = self.config.file_size_limit

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_size:
            logger.info(f"Rejected upload of {content_length} bytes (limit {max_size})")
            raise FileTooLargeError()

        content_type = request.headers.get("content-type", "")
        if not content_type.lower().startswith("multipart/form-data"):
            raise UploadError("unable to parse multipart form: request is not multipart/form-data")

        try:
            form = await request.form()
        except (MultiPartException, StarletteHTTPException) as e:
            reason = e.message if isinstance(e, MultiPartException) else e.detail
            raise UploadError(f"unable to parse multipart form: {reason}")

        uploaded_files: List[UploadedFile] = []
        try:
            for _, part in form.multi_items():
                if not isinstance(part, UploadFile):
                    continue
                uploaded_files.append(await self._save_part(part, upload_dir, rename, uploaded_files))
        finally:
            await form.close()

        return uploaded_files

    async def _save_part(
        self,
        part: UploadFile,
        upload_dir: Path,
        rename: bool,
        uploaded_files: List[UploadedFile],
    ) -> UploadedFile:
        max_size = self.config.file_size_limit
        if part.size is not None and part.size > max_size:
            logger.info(f"Rejected {part.filename}: {part.size} bytes (limit {max_size})")
            raise FileTooLargeError(uploaded_files=list(uploaded_files))

        head = await part.read(SNIFF_LENGTH)
        await part.seek(0)

        content_type = detect_content_type(head)
        if not content_type_allowed(content_type, self.config.allowed_file_types):
            logger.info(f"Rejected {part.filename}: type {content_type} is not permitted")
            raise FileTypeNotPermittedError(content_type, uploaded_files=list(uploaded_files))

        # Clients may send a full path; only the final component is kept.
        original_name = os.path.basename((part.filename or "").replace("\\", "/"))
        if rename:
            new_name = file_utils.random_file_name(original_name)
        elif original_name:
            new_name = original_name
        else:
            raise UploadError("uploaded file has no name", uploaded_files=list(uploaded_files))

        destination = upload_dir / new_name
        file_size = 0
        try:
            async with aiofiles.open(destination, "wb") as out_file:
                while True:
                    chunk = await part.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > max_size:
                        break
                    await out_file.write(chunk)
        except OSError as e:
            logger.error(f"Error writing upload {destination}: {str(e)}")
            raise UploadError(
                str(e),
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                uploaded_files=list(uploaded_files),
            ) from e

        if file_size > max_size:
            destination.unlink(missing_ok=True)
            logger.info(f"Rejected {original_name}: grew past {max_size} bytes")
            raise FileTooLargeError(uploaded_files=list(uploaded_files))

        logger.info(f"Saved upload {original_name} as {destination} ({file_size} bytes, {content_type})")
        return UploadedFile(
            new_file_name=new_name,
            original_file_name=original_name,
            file_size=file_size,
        )

    async def read_json(self, request: Request, target: Type[T]) -> T:
        """
        Decode the request body into target.

        The body must hold exactly one JSON value no larger than the
        configured limit. Failures raise JSONBodyError with a message safe
        to return to the client.
        """
        body = await read_limited_body(request, self.config.json_size_limit)
        return decode_json_body(body, target, allow_unknown_fields=self.config.allow_unknown_fields)

    def write_json(self, status_code: int, data: Any, headers: Optional[Mapping[str, str]] = None) -> Response:
        """
        Serialize data as an application/json response.
        """
        extra_headers = {
            key: value for key, value in (headers or {}).items()
            if key.lower() != "content-type"
        }
        return JSONResponse(
            content=jsonable_encoder(data),
            status_code=status_code,
            headers=extra_headers,
        )

    def error_json(self, err: Union[BaseException, str], status_code: Optional[int] = None) -> Response:
        """
        Wrap err in an error envelope.

        Without an explicit status, HTTP errors keep their own code and
        everything else is answered with 400.
        """
        if isinstance(err, StarletteHTTPException):
            message = str(err.detail)
            if status_code is None:
                status_code = err.status_code
        else:
            message = str(err)

        if status_code is None:
            status_code = status.HTTP_400_BAD_REQUEST

        return self.write_json(status_code, JSONEnvelope(error=True, message=message))

    async def push_json_to_remote(
        self,
        uri: str,
        data: Any,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Tuple[httpx.Response, int]:
        """
        POST data as JSON to uri and hand back the remote response and its status.

        Transport errors are raised as httpx.HTTPError.
        """
        payload = json.dumps(jsonable_encoder(data))
        headers = {"Content-Type": "application/json"}

        if client is None:
            async with httpx.AsyncClient(timeout=self.config.push_timeout) as own_client:
                response = await own_client.post(uri, content=payload, headers=headers)
        else:
            response = await client.post(uri, content=payload, headers=headers)

        logger.info(f"Pushed JSON to {uri}: {response.status_code}")
        return response, response.status_code

    def download_static_file(self, file_path: Union[str, Path], display_name: str) -> FileResponse:
        """
        Serve a file as an attachment so browsers save it instead of showing it.
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise ToolkitError(f"File {display_name} not found", status.HTTP_404_NOT_FOUND)

        # Names that are not plain ASCII are sent as an RFC 5987 filename*.
        return FileResponse(
            file_path,
            filename=display_name,
            content_disposition_type="attachment",
        )
