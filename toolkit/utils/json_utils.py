import json
import logging
from functools import lru_cache
from typing import Any, Dict, Tuple, Type, TypeVar
from fastapi import Request
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from toolkit.core.exceptions import JSONBodyError, JSONBodyTooLargeError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_whitespace = " \t\n\r"


class _NonStandardConstant(ValueError):
    pass


def _reject_constant(name: str) -> Any:
    raise _NonStandardConstant(name)


# NaN and Infinity are not JSON even though the json module reads them.
_decoder = json.JSONDecoder(parse_constant=_reject_constant)


def _byte_offset(text: str, pos: int) -> int:
    """
    Number of bytes read up to and including the character at pos.
    """
    return len(text[:pos].encode("utf-8")) + 1


def _constant_position(text: str, start: int) -> int:
    # Uppercase N and I only occur outside strings as NaN or Infinity.
    in_string = escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "NI":
            return i
    return start

async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """
    Read the request body, giving up as soon as it grows past max_bytes.
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise JSONBodyTooLargeError(max_bytes)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise JSONBodyTooLargeError(max_bytes)
    return bytes(body)

def split_first_value(body: bytes) -> Tuple[str, int]:
    """
    Locate the first JSON value in body.

    Returns the document text and the offset just past the first value.
    Syntax problems are reported with the messages shown to clients, where
    "at character N" counts the bytes read up to and including the
    offending one.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise JSONBodyError(f"body contains badly-formed JSON (at character {e.start + 1})")

    start = len(text) - len(text.lstrip(_whitespace))
    if start == len(text):
        raise JSONBodyError("body must not be empty")

    try:
        _, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as e:
        # Input that simply stops early has no useful offset to point at.
        if e.pos >= len(text.rstrip(_whitespace)) or e.msg.startswith("Unterminated string"):
            raise JSONBodyError("body contains badly-formed JSON")
        raise JSONBodyError(f"body contains badly-formed JSON (at character {_byte_offset(text, e.pos)})")
    except _NonStandardConstant:
        pos = _constant_position(text, start)
        raise JSONBodyError(f"body contains badly-formed JSON (at character {_byte_offset(text, pos)})")
    except RecursionError:
        raise JSONBodyError("body contains JSON nested too deeply")

    return text, end

@lru_cache(maxsize=None)
def model_with_policy(model: Type[BaseModel], allow_unknown_fields: bool) -> Type[BaseModel]:
    """
    Subclass of model that ignores or forbids undeclared top-level keys.
    """
    extra = "ignore" if allow_unknown_fields else "forbid"
    if model.model_config.get("extra") == extra:
        return model
    return type(
        model.__name__,
        (model,),
        {"model_config": ConfigDict(extra=extra), "__module__": model.__module__},
    )

def _pick_error(errors: list) -> Dict[str, Any]:
    # A required field is reported missing whenever its key was misspelled;
    # the misspelling is the more useful message.
    for error in errors:
        if error["type"] != "missing":
            return error
    return errors[0]

def translate_validation_error(exc: ValidationError, end: int) -> JSONBodyError:
    """
    Map a pydantic validation failure onto a stable client-facing message.
    """
    error = _pick_error(exc.errors())
    error_type = error["type"]
    field = ".".join(str(part) for part in error["loc"])

    if error_type == "extra_forbidden":
        return JSONBodyError(f'body contains unknown key "{field}"')

    if error_type.endswith("_type"):
        if field:
            return JSONBodyError(f'body contains incorrect JSON type for field "{field}"')
        return JSONBodyError(f"body contains incorrect JSON type (at character {end})")

    if error_type == "json_invalid":
        return JSONBodyError("body contains badly-formed JSON")

    if field:
        return JSONBodyError(f"{field}: {error['msg']}")
    return JSONBodyError(error["msg"])

def decode_json_body(body: bytes, target: Type[T], allow_unknown_fields: bool = False) -> T:
    """
    Decode exactly one JSON value from body into target.

    Model targets follow the unknown field policy at their top level;
    other targets are validated through a TypeAdapter.
    """
    text, end = split_first_value(body)

    try:
        if isinstance(target, type) and issubclass(target, BaseModel):
            model = model_with_policy(target, allow_unknown_fields)
            value = model.model_validate_json(text[:end], strict=True)
        else:
            value = TypeAdapter(target).validate_json(text[:end], strict=True)
    except ValidationError as e:
        error = translate_validation_error(e, len(text[:end].encode("utf-8")))
        logger.debug(f"Rejected JSON body: {error.message}")
        raise error

    if text[end:].strip(_whitespace):
        raise JSONBodyError("body contains more than one json value")

    return value
