"""
Shared helpers that turn httpx outcomes into the sync error taxonomy.
"""

from typing import Any

import httpx

from boardsync.core.exceptions import (
    ResourceNotFoundError,
    TransientAPIError,
    UnrecoverableAPIError,
)

MAX_ERROR_BODY_CHARS = 500


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    service: str,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send one request and classify the result.

    Returns the response for any 2xx status. Raises ``TransientAPIError``
    for transport failures and 5xx statuses, ``ResourceNotFoundError`` for
    404 and ``UnrecoverableAPIError`` for everything else, including
    decoding failures and redirect loops.
    """
    try:
        request = client.build_request(method, url, **kwargs)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise UnrecoverableAPIError(
            f"failed to build {method} request for {service}: {exc}",
            service=service,
        ) from exc

    try:
        response = await client.send(request)
    except httpx.TransportError as exc:
        raise TransientAPIError(
            f"failed to send {method} request to {service}: {exc}",
            service=service,
        ) from exc
    except httpx.RequestError as exc:
        raise UnrecoverableAPIError(
            f"{method} request to {service} failed: {exc}",
            service=service,
        ) from exc

    raise_for_status(response, service=service)
    return response


def raise_for_status(response: httpx.Response, *, service: str) -> None:
    """Raise the matching error for a non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return

    message = f"{service} API returned {status}: {_error_body(response)}"
    if status >= 500:
        raise TransientAPIError(message, status_code=status, service=service)
    if status == 404:
        raise ResourceNotFoundError(message, status_code=status, service=service)
    raise UnrecoverableAPIError(message, status_code=status, service=service)


def decode_json(response: httpx.Response, *, service: str) -> dict:
    """Decode a JSON object body; anything else is unrecoverable."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise UnrecoverableAPIError(
            f"failed to decode {service} response: {exc}",
            status_code=response.status_code,
            service=service,
        ) from exc

    if not isinstance(payload, dict):
        raise UnrecoverableAPIError(
            f"{service} returned an unexpected JSON payload shape",
            status_code=response.status_code,
            service=service,
        )
    return payload


def _error_body(response: httpx.Response) -> str:
    try:
        body = response.text
    except UnicodeDecodeError:
        return "<undecodable body>"
    return body[:MAX_ERROR_BODY_CHARS]
