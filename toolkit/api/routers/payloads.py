import logging
from typing import Any, List
import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response
from toolkit.api.schemas import EchoRequest, JSONEnvelope
from toolkit.api.dependencies import get_http_client, get_push_allowed_hosts, get_tools
from toolkit.core.exceptions import ToolkitError
from toolkit.services.tools import Tools

logger = logging.getLogger(__name__)

router = APIRouter(tags=["json"])

@router.post("/json/echo")
async def echo_json(request: Request, tools: Tools = Depends(get_tools)) -> Response:
    """
    Validate the body against EchoRequest and send it back in an envelope.
    """
    payload = await tools.read_json(request, EchoRequest)
    return tools.write_json(status.HTTP_200_OK, JSONEnvelope(message="received", data=payload))

@router.post("/json/push")
async def push_json(
    request: Request,
    uri: str,
    tools: Tools = Depends(get_tools),
    client: httpx.AsyncClient = Depends(get_http_client),
    allowed_hosts: List[str] = Depends(get_push_allowed_hosts)
) -> Response:
    """
    Forward the JSON body to uri and report the remote status code.

    Only hosts listed in PUSH_ALLOWED_HOSTS are reachable; with an empty
    list the route refuses every push.
    """
    try:
        host = httpx.URL(uri).host
    except httpx.InvalidURL:
        host = ""
    if host.lower() not in {allowed.lower() for allowed in allowed_hosts}:
        logger.info(f"Refused push to {uri}: host is not allowed")
        raise ToolkitError(f"pushing to {uri} is not permitted", status.HTTP_403_FORBIDDEN)

    payload = await tools.read_json(request, Any)
    try:
        _, status_code = await tools.push_json_to_remote(uri, payload, client=client)
    except httpx.HTTPError as e:
        logger.error(f"Error pushing JSON to {uri}: {str(e)}")
        return tools.error_json(e, status.HTTP_502_BAD_GATEWAY)

    return tools.write_json(
        status.HTTP_200_OK,
        JSONEnvelope(message=f"pushed to {uri}", data={"status_code": status_code})
    )
