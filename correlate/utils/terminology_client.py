"""
FHIR terminology client - expands SNOMED CT expression constraints (ECL)
through the ValueSet/$expand operation of a FHIR terminology server.
"""

import logging
from typing import Dict, List, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from correlate.config.settings import (
    FHIR_BASE_URL,
    FHIR_MAX_ATTEMPTS,
    FHIR_PASSWORD,
    FHIR_RETRY_BACKOFF,
    FHIR_TIMEOUT_SECONDS,
    FHIR_USERNAME,
    SNOMED_EDITION_URL,
)
from correlate.utils.errors import ExternalServiceError
from correlate.utils.models import Concept

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    return False


class TerminologyClient:
    """
    Client for ValueSet/$expand on a FHIR terminology server.

    Transient failures (connection errors, timeouts, 429 and 5xx responses)
    are retried with exponential backoff. Anything else, or a transient
    failure that outlasts max_attempts, raises ExternalServiceError.
    """

    def __init__(
        self,
        base_url: str = FHIR_BASE_URL,
        edition_url: str = SNOMED_EDITION_URL,
        username: Optional[str] = FHIR_USERNAME,
        password: Optional[str] = FHIR_PASSWORD,
        timeout_seconds: int = FHIR_TIMEOUT_SECONDS,
        max_attempts: int = FHIR_MAX_ATTEMPTS,
        backoff: float = FHIR_RETRY_BACKOFF,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.edition_url = edition_url
        self.timeout = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff

        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/fhir+json"})
        if username and password:
            self._session.auth = (username, password)

    @property
    def expand_url(self) -> str:
        return f"{self.base_url}/ValueSet/$expand"

    def value_set_url(self, ecl: str) -> str:
        return f"{self.edition_url}?fhir_vs=ecl/{ecl}"

    def _get(self, ecl: str) -> requests.Response:
        response = self._session.get(
            self.expand_url,
            params={"url": self.value_set_url(ecl)},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def _get_with_retry(self, ecl: str) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, min=0, max=30 * self.backoff),
            retry=retry_if_exception(_is_transient),
            before_sleep=lambda retry_state: logger.warning(
                f"Terminology request failed (attempt {retry_state.attempt_number}/{self.max_attempts}): "
                f"{retry_state.outcome.exception()}"
            ),
            reraise=True,
        )
        return retrying(self._get, ecl)

    def expand(self, ecl: str) -> List[Concept]:
        """
        Expands an ECL constraint into its member concepts.

        Raises:
            ExternalServiceError: if the server cannot be reached or rejects the request
        """
        logger.debug(f"Expanding ECL: {ecl}")
        try:
            response = self._get_with_retry(ecl)
        except requests.HTTPError as e:
            raise ExternalServiceError(
                "Terminology server returned an error",
                url=e.request.url if e.request is not None else self.expand_url,
                status_code=e.response.status_code if e.response is not None else None,
                response_text=e.response.text if e.response is not None else None,
            ) from e
        except requests.RequestException as e:
            raise ExternalServiceError(f"Terminology server request failed: {e}",
                                       url=self.expand_url) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalServiceError("Terminology server returned a non-JSON response",
                                       url=response.url, status_code=response.status_code,
                                       response_text=response.text) from e
        if not isinstance(payload, dict):
            raise ExternalServiceError("Unexpected ValueSet expansion payload",
                                       url=response.url, status_code=response.status_code,
                                       response_text=response.text)

        contains = (payload.get("expansion") or {}).get("contains") or []
        concepts = [Concept(str(c["code"]), c.get("display")) for c in contains if c.get("code")]
        logger.debug(f"Received {len(concepts)} concepts")
        return concepts

    def expand_catalog(self, ecl: str) -> Dict[str, Concept]:
        return {c.code: c for c in self.expand(ecl)}

    def close(self):
        self._session.close()
