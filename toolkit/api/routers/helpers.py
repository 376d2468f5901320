from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from toolkit.api.schemas import JSONEnvelope, SlugRequest
from toolkit.api.dependencies import get_tools
from toolkit.services.tools import Tools

router = APIRouter(tags=["helpers"])

@router.get("/helpers/random-string")
def random_string(length: int = Query(32, ge=0, le=4096), tools: Tools = Depends(get_tools)) -> Response:
    return tools.write_json(status.HTTP_200_OK, JSONEnvelope(data={"value": tools.random_string(length)}))

@router.post("/helpers/slugify")
async def slugify(request: Request, tools: Tools = Depends(get_tools)) -> Response:
    payload = await tools.read_json(request, SlugRequest)
    return tools.write_json(status.HTTP_200_OK, JSONEnvelope(data={"slug": tools.slugify(payload.text)}))
