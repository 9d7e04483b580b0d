from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping

import httpx

log = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST"]


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    # parsed JSON object, or {"raw": ...} for anything else
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None


def _wants_json(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}...(truncated, {len(text)} chars)"


class UpstreamHttpClient:
    """
    Thin wrapper over one pooled httpx.AsyncClient for the geocoder and the
    image host. Transport and HTTP failures come back as an HttpResult with
    ok=False; callers turn that into their own exception types.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 20.0,
        max_response_body_chars: int = 5_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        *,
        method: HttpMethod,
        url: str,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
    ) -> HttpResult:
        try:
            resp = await self._client.request(
                method,
                url,
                params=dict(params or {}),
                data=dict(data) if data is not None else None,
                files=dict(files) if files is not None else None,
            )
        except httpx.TimeoutException as e:
            log.info("%s %s timed out", method, url.split("?", 1)[0])
            return HttpResult(ok=False, status_code=None, detail={}, error_code="TIMEOUT", error_message=str(e))
        except httpx.RequestError as e:
            # dns, refused connection, tls
            log.info("%s %s failed: %s", method, url.split("?", 1)[0], e)
            return HttpResult(ok=False, status_code=None, detail={}, error_code="REQUEST_ERROR", error_message=str(e))

        if _wants_json(resp):
            try:
                body = resp.json()
                detail = body if isinstance(body, dict) else {"data": body}
            except ValueError:
                detail = {"raw": _clip(resp.text, self._max_body)}
        else:
            detail = {"raw": _clip(resp.text, self._max_body)}

        if resp.is_success:
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail)
        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=f"HTTP_{resp.status_code}",
            error_message=f"HTTP {resp.status_code}",
        )

    async def get(self, *, url: str, params: Mapping[str, str] | None = None) -> HttpResult:
        return await self.request(method="GET", url=url, params=params)

    async def post_form(self, *, url: str, data: Mapping[str, Any], files: Mapping[str, Any] | None = None) -> HttpResult:
        return await self.request(method="POST", url=url, data=data, files=files)
