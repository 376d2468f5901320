from pathlib import Path
from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import FileResponse, Response
from toolkit.api.schemas import JSONEnvelope
from toolkit.api.dependencies import get_static_dir, get_tools, get_upload_dir
from toolkit.core.config import settings
from toolkit.services.tools import Tools

router = APIRouter(tags=["files"])

@router.post("/files/upload")
async def upload_files(
    request: Request,
    rename: bool = settings.RENAME_UPLOADS,
    tools: Tools = Depends(get_tools),
    upload_dir: Path = Depends(get_upload_dir)
) -> Response:
    """
    Upload one or more files as multipart/form-data.
    """
    files = await tools.upload_files(request, upload_dir, rename=rename)
    return tools.write_json(
        status.HTTP_201_CREATED,
        JSONEnvelope(message=f"{len(files)} file(s) uploaded", data=files)
    )

@router.post("/files/upload-one")
async def upload_file(
    request: Request,
    rename: bool = settings.RENAME_UPLOADS,
    tools: Tools = Depends(get_tools),
    upload_dir: Path = Depends(get_upload_dir)
) -> Response:
    """
    Upload a single file; only the first file part is stored.
    """
    uploaded = await tools.upload_file(request, upload_dir, rename=rename)
    return tools.write_json(
        status.HTTP_201_CREATED,
        JSONEnvelope(message=f"uploaded {uploaded.original_file_name}", data=uploaded)
    )

@router.get("/files/download/{filename}")
def download_file(
    filename: str,
    display_name: Optional[str] = None,
    tools: Tools = Depends(get_tools),
    static_dir: Path = Depends(get_static_dir)
) -> FileResponse:
    """
    Download a static file, forcing the browser to save it as display_name.
    """
    return tools.download_static_file(static_dir / filename, display_name or filename)
