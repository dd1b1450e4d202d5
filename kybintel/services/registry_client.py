"""
Registry Client: HTTP client for a Companies-House-style business registry.

Read-only. Maps the registry's JSON into the engine's input records:
  /company/{n}                                 → CompanyProfile
  /company/{n}/officers                        → list[Officer]
  /company/{n}/filing-history                  → list[Filing]
  /company/{n}/persons-with-significant-control → list[Shareholding]
  /officers/{id}/appointments                  → (name, list[Officer])

Every call runs under a per-attempt timeout, retries transient failures
with backoff and goes through the registry circuit breaker.
"""

import asyncio
import re
from typing import Any, Callable, Optional, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from kybintel.exceptions import (
    RegistryError,
    RegistryNotFound,
    RegistryTimeout,
    RegistryUnavailable,
)
from kybintel.schemas.entity import (
    CompanyProfile,
    Filing,
    Officer,
    Shareholding,
    ShareholderKind,
)
from kybintel.services.resilience import CircuitBreaker, retry_with_backoff, with_timeout

logger = structlog.get_logger(__name__)

T = TypeVar("T")

OWNERSHIP_BAND = re.compile(r"ownership-of-shares-(\d+)-to-(\d+)-percent")

PSC_KINDS: dict[str, ShareholderKind] = {
    "individual-person-with-significant-control": ShareholderKind.INDIVIDUAL,
    "individual-beneficial-owner": ShareholderKind.INDIVIDUAL,
    "corporate-entity-person-with-significant-control": ShareholderKind.CORPORATE,
    "corporate-entity-beneficial-owner": ShareholderKind.CORPORATE,
    "legal-person-person-with-significant-control": ShareholderKind.LEGAL_PERSON,
    "legal-person-beneficial-owner": ShareholderKind.LEGAL_PERSON,
}

registry_breaker = CircuitBreaker(
    name="registry",
    failure_threshold=5,
    recovery_timeout=30.0,
    ignore=(RegistryNotFound,),
)


# ── Mapping helpers ───────────────────────────────────────────────────────


def _last_segment(link: Optional[str]) -> Optional[str]:
    if not link:
        return None
    return link.rstrip("/").rsplit("/", 1)[-1] or None


def _items(body: Any) -> list[dict]:
    if isinstance(body, dict) and isinstance(body.get("items"), list):
        items = body["items"]
        if not all(isinstance(item, dict) for item in items):
            raise RegistryError("Registry returned malformed data")
        return items
    return []


def _decode(resource: str, parse: Callable[[], T]) -> T:
    """Map records with parse; an invalid record fails the whole category."""
    try:
        return parse()
    except ValidationError as exc:
        logger.warning("registry_malformed_record", resource=resource, errors=exc.error_count())
        raise RegistryError("Registry returned malformed data") from exc


def ownership_upper_bound(natures_of_control: list[str]) -> Optional[float]:
    """Highest upper bound of any 'ownership-of-shares-X-to-Y-percent' band."""
    bounds = [
        float(match.group(2))
        for nature in natures_of_control
        if (match := OWNERSHIP_BAND.search(nature))
    ]
    return max(bounds) if bounds else None


def parse_profile(raw: dict) -> CompanyProfile:
    """The registry calls the company type `type`."""
    if isinstance(raw, dict) and "company_type" not in raw and "type" in raw:
        raw = {**raw, "company_type": raw["type"]}
    return CompanyProfile.model_validate(raw)


def parse_officer(raw: dict, company_number: Optional[str] = None) -> Officer:
    links = raw.get("links") or {}
    officer_link = (links.get("officer") or {}).get("appointments")
    return Officer(
        name=raw.get("name", ""),
        officer_role=raw.get("officer_role"),
        appointed_on=raw.get("appointed_on"),
        resigned_on=raw.get("resigned_on"),
        officer_id=_last_segment(officer_link.removesuffix("/appointments") if officer_link else None),
        appointment_id=_last_segment(links.get("self")),
        company_number=company_number,
    )


def parse_appointment(raw: dict) -> Officer:
    """An item of /officers/{id}/appointments: the company is in appointed_to."""
    company = raw.get("appointed_to") or {}
    links = raw.get("links") or {}
    return Officer(
        name=raw.get("name", ""),
        officer_role=raw.get("officer_role"),
        appointed_on=raw.get("appointed_on"),
        resigned_on=raw.get("resigned_on"),
        appointment_id=_last_segment(links.get("self")),
        company_number=company.get("company_number"),
        company_name=company.get("company_name"),
    )


def parse_psc(raw: dict) -> Shareholding:
    links = raw.get("links") or {}
    return Shareholding(
        id=_last_segment(links.get("self")) or raw.get("etag"),
        name=raw.get("name"),
        kind=PSC_KINDS.get(raw.get("kind", ""), ShareholderKind.OTHER).value,
        percentage_held=ownership_upper_bound(raw.get("natures_of_control") or []),
        notified_on=raw.get("notified_on"),
    )


# ── Client ────────────────────────────────────────────────────────────────


class RegistryClient:
    """
    Async registry client.

    Raises RegistryNotFound (404), RegistryTimeout (deadline on every
    attempt) or RegistryError (anything else). Callers decide whether a
    failure degrades a category or fails the request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        retry_attempts: int = 2,
        retry_base_delay: float = 0.5,
        officers_page_size: int = 35,
        filings_page_size: int = 25,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.officers_page_size = officers_page_size
        self.filings_page_size = filings_page_size
        self.breaker = breaker or registry_breaker
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "RegistryClient":
        return cls(
            base_url=settings.registry_url,
            api_key=settings.registry_api_key,
            timeout=settings.registry_fetch_timeout_seconds,
            retry_attempts=settings.registry_retry_attempts,
            retry_base_delay=settings.registry_retry_base_delay,
            officers_page_size=settings.registry_officers_page_size,
            filings_page_size=settings.registry_filings_page_size,
        )

    def _client(self) -> httpx.AsyncClient:
        # The registry's basic auth is the API key as username, empty password
        auth = httpx.BasicAuth(self.api_key, "") if self.api_key else None
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    async def _request(self, path: str, params: Optional[dict], resource: str) -> Any:
        try:
            async with self._client() as client:
                resp = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise RegistryUnavailable(f"Registry request failed: {type(exc).__name__}") from exc

        if resp.status_code == 404:
            raise RegistryNotFound(resource)
        if resp.status_code == 429 or resp.status_code >= 500:
            raise RegistryUnavailable(
                "Registry temporarily unavailable", upstream_status=resp.status_code,
            )
        if resp.status_code >= 400:
            raise RegistryError("Registry rejected the request", upstream_status=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise RegistryError("Registry returned malformed JSON") from exc

    async def _get(self, path: str, resource: str, params: Optional[dict] = None) -> Any:
        operation = f"registry:{path}"

        async def attempt() -> Any:
            return await with_timeout(
                lambda: self._request(path, params, resource), self.timeout, operation,
            )

        async def guarded() -> Any:
            return await retry_with_backoff(
                attempt,
                max_retries=self.retry_attempts,
                base_delay=self.retry_base_delay,
                retry_on=(RegistryUnavailable, asyncio.TimeoutError),
                give_up_on=(RegistryNotFound,),
                operation_name=operation,
            )

        try:
            body = await self.breaker.call(guarded)
        except asyncio.TimeoutError as exc:
            raise RegistryTimeout(operation, self.timeout) from exc
        logger.debug("registry_fetched", path=path)
        return body

    # ── Endpoints ─────────────────────────────────────────────────────

    async def get_company_profile(self, company_number: str) -> CompanyProfile:
        body = await self._get(f"/company/{company_number}", f"Company {company_number}")
        return _decode(f"Company {company_number}", lambda: parse_profile(body))

    async def get_company_officers(self, company_number: str) -> list[Officer]:
        body = await self._get(
            f"/company/{company_number}/officers",
            f"Officers of {company_number}",
            params={"items_per_page": self.officers_page_size},
        )
        return _decode(
            f"Officers of {company_number}",
            lambda: [parse_officer(item, company_number) for item in _items(body)],
        )

    async def get_filing_history(self, company_number: str) -> list[Filing]:
        body = await self._get(
            f"/company/{company_number}/filing-history",
            f"Filing history of {company_number}",
            params={"items_per_page": self.filings_page_size},
        )
        return _decode(
            f"Filing history of {company_number}",
            lambda: [Filing.model_validate(item) for item in _items(body)],
        )

    async def get_pscs(self, company_number: str) -> list[Shareholding]:
        body = await self._get(
            f"/company/{company_number}/persons-with-significant-control",
            f"PSCs of {company_number}",
            params={"items_per_page": self.officers_page_size},
        )
        return _decode(
            f"PSCs of {company_number}", lambda: [parse_psc(item) for item in _items(body)],
        )

    async def get_officer_appointments(self, officer_id: str) -> tuple[Optional[str], list[Officer]]:
        body = await self._get(f"/officers/{officer_id}/appointments", f"Officer {officer_id}")
        name = body.get("name") if isinstance(body, dict) else None
        appointments = _decode(
            f"Officer {officer_id}", lambda: [parse_appointment(item) for item in _items(body)],
        )
        return name, appointments
