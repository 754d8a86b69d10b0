"""Client for the manuals API.

Provides async access to the collaborator service:
- POST /auth/login (bearer token for later calls)
- GET/POST /manuals, GET/PUT /manuals/{id}
- GET/POST /services

Failure mapping:
- network errors, timeouts, 5xx -> TransientError (retryable)
- 401 -> AuthenticationError
- other 4xx -> ApiRequestError
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from manual_editor.api.schemas import (
    LoginRequest,
    LoginResponse,
    ManualSummary,
    ServiceCreate,
    ServiceResponse,
)
from manual_editor.config.app_config import ApiConfig, load_app_config
from manual_editor.core.errors import (
    ManualEditorError,
    StructuralInvariantViolation,
    TransientError,
    ValidationError,
)
from manual_editor.core.models import ManualDocument
from manual_editor.utils.validators import validate_service_form

logger = structlog.get_logger(__name__)


class ApiRequestError(ManualEditorError):
    """The API rejected the request (non-retryable)."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class AuthenticationError(ApiRequestError):
    """Missing, expired or invalid credentials."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _parse_manual(data: Any) -> ManualDocument:
    """Build a ManualDocument from a response body.

    Raises:
        ApiRequestError: body is not a valid manual
    """
    try:
        return ManualDocument.from_dict(data)
    except (KeyError, ValueError, TypeError, AttributeError, StructuralInvariantViolation) as e:
        logger.warning("api_invalid_manual", error=str(e))
        raise ApiRequestError(f"Invalid manual in response: {e}", detail=data) from e


class ManualsApiClient:
    """Async client for the manuals API."""

    def __init__(
        self,
        config: ApiConfig | None = None,
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or load_app_config().api
        self.token = token or self.config.get_token()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> ManualsApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self, method: str, path: str, json_body: dict[str, Any] | None = None
    ) -> Any:
        try:
            response = await self._http.request(
                method, path, json=json_body, headers=self._headers()
            )
        except httpx.TransportError as e:
            logger.warning("api_transport_error", method=method, path=path, error=str(e))
            raise TransientError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500:
            logger.warning(
                "api_server_error", method=method, path=path, status=response.status_code
            )
            raise TransientError(
                f"{method} {path} failed: {_error_message(response)}",
                status_code=response.status_code,
            )
        if response.status_code == 401:
            raise AuthenticationError(_error_message(response), response.status_code)
        if response.status_code >= 400:
            raise ApiRequestError(
                _error_message(response), response.status_code, detail=response.text
            )

        logger.debug("api_request", method=method, path=path, status=response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResponse:
        """Log in and keep the bearer token for subsequent calls."""
        request = LoginRequest(email=email.strip(), password=password)
        data = await self._request("POST", "/auth/login", request.model_dump())
        result = LoginResponse.model_validate(data)
        self.token = result.access_token
        logger.info("api_logged_in", email=request.email)
        return result

    # -------------------------------------------------------------------------
    # Manuals
    # -------------------------------------------------------------------------

    async def list_manuals(self) -> list[ManualSummary]:
        data = await self._request("GET", "/manuals")
        return [ManualSummary.model_validate(item) for item in data or []]

    async def get_manual(self, manual_id: str) -> ManualDocument:
        data = await self._request("GET", f"/manuals/{manual_id}")
        return _parse_manual(data)

    async def create_manual(self, document: ManualDocument) -> ManualDocument:
        """POST a never-saved document; the response carries its new id."""
        data = await self._request("POST", "/manuals", document.to_dict())
        return _parse_manual(data)

    async def update_manual(self, document: ManualDocument) -> ManualDocument:
        if document.id is None:
            raise ValueError("Cannot update a manual without an id")
        data = await self._request("PUT", f"/manuals/{document.id}", document.to_dict())
        return _parse_manual(data)

    async def save_manual(self, document: ManualDocument) -> ManualDocument:
        """Create or update depending on whether the document has an id."""
        if document.id is None:
            return await self.create_manual(document)
        return await self.update_manual(document)

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    async def list_services(self) -> list[ServiceResponse]:
        data = await self._request("GET", "/services")
        return [ServiceResponse.model_validate(item) for item in data or []]

    async def create_service(self, code: str, name_ar: str, name_en: str) -> ServiceResponse | None:
        """Create a service after client-side validation.

        Raises:
            ValidationError: the form is invalid (field and code set)
        """
        errors = validate_service_form(code, name_ar, name_en)
        if errors:
            field, code_name = next(iter(errors.items()))
            raise ValidationError(f"Invalid {field}: {code_name}", field=field, code=code_name)

        body = ServiceCreate(code=code.strip(), name_ar=name_ar.strip(), name_en=name_en.strip())
        data = await self._request("POST", "/services", body.model_dump(by_alias=True))
        logger.info("service_created", code=body.code)
        if data is None:
            return None
        return ServiceResponse.model_validate(data)
