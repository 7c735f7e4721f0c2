"""Wrapper for the relational REST API and the shared request plumbing."""

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from google.auth import exceptions as ga_exceptions
from pydantic import BaseModel, TypeAdapter, ValidationError

import config
from api_clients import Transport, TransportResponse, is_success
from auth import SessionCredentials
from core.query_builder import ProjectionField, RestQueryBuilder
from utils.logger import get_logger
from utils.error_handler import APIError, NetworkError, NotAuthenticatedError
from utils.retry import retry_on_exception

logger = get_logger()

M = TypeVar("M", bound=BaseModel)

# Only connection-level failures of idempotent requests are retried;
# HTTP error statuses are answers.
RETRYABLE_REST_ERRORS = (ga_exceptions.TransportError,)


class RestService:
    """Issues authenticated requests against the backend.

    Every request carries the anonymous key in the `apikey` header and the
    session's current token as a bearer `authorization` header.
    """

    SERVICE_NAME = 'rest'

    def __init__(
        self,
        base_url: str,
        session: SessionCredentials,
        transport: Transport,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        """Initializes the RestService.

        Args:
            base_url: Base URL of the backend, e.g. ``https://xyz.supabase.co``.
            session: The session holding the anonymous key and current token.
            transport: The callable used to send HTTP requests.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.transport = transport
        self.timeout = timeout

    # --- Request plumbing ---

    def _headers(self) -> Dict[str, str]:
        if not self.session.current_credential():
            raise NotAuthenticatedError("No credential available; construct the client with an anonymous key.")
        headers = {"accept": "application/json"}
        if self.session.anon_key:
            headers["apikey"] = self.session.anon_key
        self.session.apply(headers)
        return headers

    def _send(self, url: str, method: str, body: Optional[bytes], headers: Dict[str, str]) -> TransportResponse:
        return self.transport(url=url, method=method, body=body, headers=headers, timeout=self.timeout)

    @retry_on_exception(exceptions=RETRYABLE_REST_ERRORS)
    def _send_with_retry(self, url: str, method: str, body: Optional[bytes], headers: Dict[str, str]) -> TransportResponse:
        return self._send(url, method, body, headers)

    def request(
        self, url: str, method: str = "GET", body: Optional[Any] = None, idempotent: Optional[bool] = None
    ) -> TransportResponse:
        """Sends one request to an absolute URL.

        Args:
            url: The absolute URL.
            method: The HTTP method.
            body: A JSON-serializable body, or None.
            idempotent: Whether the request may be resent after a connection
                failure. Defaults to True for GET only, so a POST the server
                may already have acted on is sent once.

        Returns:
            The transport response; its status is not checked here.

        Raises:
            NotAuthenticatedError: If the session holds no credential at all.
            NetworkError: If no HTTP response was received (after retries,
                for idempotent requests).
        """
        headers = self._headers()
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["content-type"] = "application/json"

        if idempotent is None:
            idempotent = method == "GET"
        send = self._send_with_retry if idempotent else self._send

        logger.debug(f"{method} {url}")
        try:
            response = send(url, method, data, headers)
        except ga_exceptions.TransportError as e:
            logger.error(f"{method} {url} failed before a response was received: {e}", exc_info=config.DEBUG)
            raise NetworkError(f"{method} {url} failed: {e}", service=self.SERVICE_NAME) from e

        if not is_success(response.status):
            logger.warning(f"{method} {url} returned status {response.status}.")
        return response

    def get(self, path: str) -> TransportResponse:
        """GETs a path relative to the backend base URL."""
        return self.request(f"{self.base_url}{path}")

    def decode_json(self, response: TransportResponse) -> Any:
        if not response.data:
            return None
        try:
            return json.loads(response.data)
        except ValueError as e:
            logger.error(f"Response body is not valid JSON: {e}", exc_info=config.DEBUG)
            raise APIError("Response body is not valid JSON.", status_code=response.status, service=self.SERVICE_NAME) from e

    # --- Relational queries ---

    def execute(self, builder: RestQueryBuilder) -> Optional[List[Dict[str, Any]]]:
        """Runs a built query.

        Returns:
            The flat rows, or None when the server answers with a non-success status.
        """
        response = self.get(builder.generate_query())
        if not is_success(response.status):
            return None
        rows = self.decode_json(response)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise APIError(
                f"Expected a list of rows from table '{builder.table}'.",
                status_code=response.status,
                service=self.SERVICE_NAME,
            )
        logger.debug(f"Table '{builder.table}' returned {len(rows)} rows.")
        return rows

    def query(
        self,
        table: str,
        predicates: Optional[Mapping[str, Any]] = None,
        select: Optional[Sequence[ProjectionField]] = None,
        exclude: Optional[Mapping[str, Any]] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """Queries a table with equality (`predicates`) and inequality (`exclude`) filters.

        Returns:
            The flat rows, or None on a non-success status.
        """
        builder = RestQueryBuilder.from_table(table)
        if select:
            builder.select(*select)
        for column, value in (predicates or {}).items():
            builder.equals(column, value)
        for column, value in (exclude or {}).items():
            builder.not_equals(column, value)
        return self.execute(builder)

    def parse_rows(self, model: Type[M], rows: List[Dict[str, Any]]) -> List[M]:
        try:
            return TypeAdapter(List[model]).validate_python(rows)
        except ValidationError as e:
            logger.error(f"Rows could not be parsed as {model.__name__}: {e}", exc_info=config.DEBUG)
            raise APIError(f"Unexpected row shape for {model.__name__}.", service=self.SERVICE_NAME) from e

    def execute_as(self, model: Type[M], builder: RestQueryBuilder) -> Optional[List[M]]:
        rows = self.execute(builder)
        if rows is None:
            return None
        return self.parse_rows(model, rows)

    def query_as(
        self,
        model: Type[M],
        table: str,
        predicates: Optional[Mapping[str, Any]] = None,
        select: Optional[Sequence[ProjectionField]] = None,
        exclude: Optional[Mapping[str, Any]] = None,
    ) -> List[M]:
        """Like `query`, deserialized into `model`; an empty list on a non-success status."""
        rows = self.query(table, predicates, select, exclude)
        return self.parse_rows(model, rows) if rows else []

    # --- Writes ---

    def insert(self, path: str, body: Any, base_url: Optional[str] = None, idempotent: bool = False) -> Tuple[int, Any]:
        """POSTs a JSON body.

        Args:
            path: Path (and query string) relative to `base_url`.
            body: A JSON-serializable body.
            base_url: Overrides the backend base URL (used for the app API).
            idempotent: Set for read-only POSTs (storage listings) that may be
                resent after a connection failure.

        Returns:
            A tuple of the HTTP status and the decoded JSON body (None when
            the body is empty or the status is not a success).
        """
        root = (base_url or self.base_url).rstrip("/")
        response = self.request(f"{root}{path}", method="POST", body=body, idempotent=idempotent)
        if not is_success(response.status):
            return response.status, None
        return response.status, self.decode_json(response)
