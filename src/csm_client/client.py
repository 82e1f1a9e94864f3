"""Main CSM client module: one authenticated HTTP session, lazily built services."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .exceptions import MalformedResponseError, UpstreamError
from .models import CSMConfig
from .services import BOSService, BSSService, CAPMCService, CFSService, HSMService, IMSService

logger = logging.getLogger(__name__)


def extract_error_detail(response: requests.Response) -> Optional[str]:
    """Pull the human readable detail out of an error response (RFC 7807 bodies first)."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None

    if isinstance(body, dict):
        for key in ("detail", "err_msg", "message", "title"):
            value = body.get(key)
            if value:
                return str(value)
    return str(body) if body else None


class CSMClient:
    """HTTP client for the CSM management APIs with per-service helpers."""

    def __init__(self, config: CSMConfig, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: Site connection settings (base URL, token, CA bundle, proxy)
            session: Optional pre-built requests session, mostly for tests
        """
        self.config = config
        self._session = session

        # Service clients will be initialized lazily
        self._hsm: Optional[HSMService] = None
        self._cfs: Optional[CFSService] = None
        self._ims: Optional[IMSService] = None
        self._bos: Optional[BOSService] = None
        self._bss: Optional[BSSService] = None
        self._capmc: Optional[CAPMCService] = None

    @property
    def session(self) -> requests.Session:
        """Lazy-load the HTTP session."""
        if self._session is None:
            session = requests.Session()
            session.headers.update(
                {
                    "Authorization": f"Bearer {self.config.token}",
                    "Accept": "application/json",
                }
            )
            if self.config.root_cert:
                session.verify = str(Path(self.config.root_cert).expanduser())
            if self.config.has_proxy():
                logger.debug("Routing CSM requests through %s", self.config.socks5_proxy)
                session.proxies.update(self.config.proxies)
            self._session = session
        return self._session

    @property
    def hsm(self) -> HSMService:
        """Lazy-load the membership directory service."""
        if not self._hsm:
            self._hsm = HSMService(self)
        return self._hsm

    @property
    def cfs(self) -> CFSService:
        """Lazy-load the configuration / component registry service."""
        if not self._cfs:
            self._cfs = CFSService(self)
        return self._cfs

    @property
    def ims(self) -> IMSService:
        """Lazy-load the image registry service."""
        if not self._ims:
            self._ims = IMSService(self)
        return self._ims

    @property
    def bos(self) -> BOSService:
        """Lazy-load the deployment template service."""
        if not self._bos:
            self._bos = BOSService(self)
        return self._bos

    @property
    def bss(self) -> BSSService:
        """Lazy-load the boot parameter service."""
        if not self._bss:
            self._bss = BSSService(self)
        return self._bss

    @property
    def capmc(self) -> CAPMCService:
        """Lazy-load the power controller service."""
        if not self._capmc:
            self._capmc = CAPMCService(self)
        return self._capmc

    def request(
        self,
        method: str,
        path: str,
        *,
        service: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Send one request and decode the JSON answer.

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            UpstreamError: On transport failures and non-2xx responses
            MalformedResponseError: If a 2xx body is not valid JSON
        """
        url = f"{self.config.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, params)

        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            logger.error(f"{service} request {method} {path} failed: {e}")
            raise UpstreamError(
                f"{service} request {method} {path} failed", detail=str(e), service=service
            ) from e

        if not response.ok:
            detail = extract_error_detail(response)
            logger.error(
                "%s returned HTTP %s for %s %s: %s",
                service,
                response.status_code,
                method,
                path,
                detail,
            )
            raise UpstreamError(
                f"{service} returned HTTP {response.status_code} for {method} {path}",
                status_code=response.status_code,
                detail=detail,
                service=service,
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{service} returned a non-JSON body for {method} {path}",
                status_code=response.status_code,
                detail=str(e),
                service=service,
            ) from e

    def get(self, path: str, *, service: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, service=service, params=params)

    def post(self, path: str, *, service: str, json: Any = None) -> Any:
        return self.request("POST", path, service=service, json=json)

    def patch(self, path: str, *, service: str, json: Any = None) -> Any:
        return self.request("PATCH", path, service=service, json=json)
