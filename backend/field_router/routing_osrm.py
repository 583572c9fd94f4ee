from __future__ import annotations

import asyncio
from typing import Any, Final

import httpx

from .geo import LatLngTuple


class OSRMError(RuntimeError):
    pass


class OSRMRetryableError(OSRMError):
    """An OSRM error that is likely transient and safe to retry."""

    pass


_RETRYABLE_STATUS: Final[set[int]] = {408, 425, 429, 500, 502, 503, 504}


def osrm_profile_for_mode(mode: str) -> str:
    # The public server only has a dependable driving graph; everything else walks.
    return "car" if mode == "car" else "foot"


def _format_osrm_error(resp: httpx.Response) -> str:
    """Best-effort decode of OSRM JSON error payloads."""
    try:
        data = resp.json()
        if isinstance(data, dict):
            code = data.get("code")
            message = data.get("message")
            if code and message:
                return f"OSRM {resp.status_code} {code}: {message}"
            if code:
                return f"OSRM {resp.status_code} {code}"
            if message:
                return f"OSRM {resp.status_code}: {message}"
    except ValueError:
        # fall through to text
        pass

    body = (resp.text or "").strip().replace("\n", " ")
    if len(body) > 240:
        body = body[:240] + "..."
    if body:
        return f"OSRM {resp.status_code}: {body}"
    return f"OSRM HTTP {resp.status_code}"


class OSRMClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 8.0,
        max_retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.max_retries = max(1, int(max_retries))

        # IMPORTANT: trust_env=False prevents proxy env vars (HTTP_PROXY/HTTPS_PROXY)
        # from hijacking requests made from field laptops on managed networks.
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s, connect=min(5.0, self.timeout_s)),
            trust_env=False,
            headers={"accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_routes(
        self,
        *,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        profile: str = "car",
    ) -> list[dict[str, Any]]:
        """Fetch route candidates from OSRM.

        The whole exchange, retries included, is aborted after ``timeout_s``
        seconds and surfaces as :class:`OSRMError` like any other failure.
        """
        coords = f"{origin_lng},{origin_lat};{dest_lng},{dest_lat}"
        url = f"{self.base_url}/route/v1/{profile}/{coords}"
        params: dict[str, str] = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
        }
        try:
            return await asyncio.wait_for(self._call(url, params), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise OSRMError(
                f"OSRM request aborted after {self.timeout_s:g}s (base={self.base_url})"
            ) from e

    async def _call(self, url: str, params: dict[str, str]) -> list[dict[str, Any]]:
        last_err: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                resp = await self._client.get(url, params=params)

                # Fast-fail on most 4xx: these are usually request errors
                # (bad profile, no segment, etc.)
                if 400 <= resp.status_code < 500 and resp.status_code not in _RETRYABLE_STATUS:
                    raise OSRMError(_format_osrm_error(resp))

                # Retryable HTTP errors
                if resp.status_code in _RETRYABLE_STATUS:
                    raise OSRMRetryableError(_format_osrm_error(resp))

                resp.raise_for_status()
                try:
                    data = resp.json()
                except ValueError as e:
                    raise OSRMError("OSRM returned a non-JSON body") from e

                if not isinstance(data, dict) or data.get("code") != "Ok":
                    code = data.get("code") if isinstance(data, dict) else None
                    message = data.get("message") if isinstance(data, dict) else None
                    raise OSRMError(f"OSRM error code={code} message={message}")

                routes = data.get("routes", [])
                if not isinstance(routes, list) or not routes:
                    raise OSRMError("OSRM returned no routes")

                return routes

            except OSRMRetryableError as e:
                last_err = e
            except (httpx.TimeoutException, httpx.NetworkError, httpx.TransportError) as e:
                last_err = e
            except httpx.HTTPStatusError as e:
                # Non-retryable HTTP errors (already handled above for 4xx),
                # but keep this as a safety net.
                raise OSRMError(str(e)) from e

            if attempt < self.max_retries - 1:
                await asyncio.sleep(min(0.25 * (2**attempt), 2.0))

        # httpx exceptions can stringify to "" (e.g. some timeouts), so include the type.
        if last_err is None:
            detail = "unknown error"
        else:
            msg = str(last_err).strip()
            detail = (
                f"{type(last_err).__name__}: {msg}"
                if msg
                else f"{type(last_err).__name__}: {last_err!r}"
            )
        raise OSRMError(
            f"OSRM request failed after {self.max_retries} attempt(s) (base={self.base_url}): {detail}"
        )


def route_coordinates(route: dict[str, Any]) -> list[LatLngTuple]:
    """Return the route polyline as (lat, lng); OSRM GeoJSON is (lng, lat)."""
    if not isinstance(route, dict):
        raise OSRMError("OSRM route is not an object")
    geom = route.get("geometry")
    if not isinstance(geom, dict):
        raise OSRMError("OSRM route missing geometry")

    coords = geom.get("coordinates")
    if not isinstance(coords, list) or len(coords) < 2:
        raise OSRMError("OSRM geometry missing coordinates")

    out: list[LatLngTuple] = []
    for pt in coords:
        if (
            isinstance(pt, (list, tuple))
            and len(pt) >= 2
            and isinstance(pt[0], (int, float))
            and isinstance(pt[1], (int, float))
        ):
            out.append((float(pt[1]), float(pt[0])))
    if len(out) < 2:
        raise OSRMError("OSRM geometry invalid")
    return out
