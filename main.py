import logging
import uvicorn
from fastapi import FastAPI, Request
from toolkit.api.routers import files, helpers, payloads
from toolkit.api.dependencies import get_tools
from toolkit.core.config import settings
from toolkit.core.exceptions import ToolkitError

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("request_toolkit")

# Create FastAPI application
app = FastAPI(title=settings.PROJECT_NAME)

# Include routers
app.include_router(files.router, prefix=settings.API_PREFIX)
app.include_router(payloads.router, prefix=settings.API_PREFIX)
app.include_router(helpers.router, prefix=settings.API_PREFIX)

@app.exception_handler(ToolkitError)
async def toolkit_error_handler(request: Request, exc: ToolkitError):
    """
    Render toolkit errors as JSON error envelopes.
    """
    logger.info(f"{request.method} {request.url.path} - {exc.status_code}: {exc.message}")
    return get_tools().error_json(exc)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8005, reload=True)
