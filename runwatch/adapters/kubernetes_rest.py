"""Kubernetes REST adapter for Tekton run submission, reads and watches."""

from __future__ import annotations

import json
import logging
import socket
import ssl
from collections.abc import Iterator
from typing import Any, Final

import httpx

from runwatch.domain import HealthStatus, ResourceKind, StreamEvent, domain_resource_kind_from_value
from runwatch.mapping import mapping_parse_watch_frame

from .control_plane_errors import (
    ControlPlaneAuthError,
    ControlPlaneConflictError,
    ControlPlaneConnectionError,
    ControlPlaneError,
    ControlPlaneNotFoundError,
    ControlPlaneResponseError,
    ControlPlaneTimeoutError,
    ControlPlaneWatchError,
)
from .interfaces import ControlPlanePort, EventStreamPort
from .resource_paths import resource_collection_path, resource_item_path

logger = logging.getLogger(__name__)


class KubernetesWatchStream(EventStreamPort):
    """Watch subscription backed by one streaming HTTP response.

    The API server sends one JSON frame per line. Object frames are mapped to
    domain stream events; `ERROR` frames end the subscription with
    `ControlPlaneWatchError`; `BOOKMARK` frames are skipped.
    """

    _ERROR_FRAME_TYPE: Final[str] = "ERROR"
    _BOOKMARK_FRAME_TYPE: Final[str] = "BOOKMARK"

    def __init__(self, response: httpx.Response, description: str):
        """Initialize watch stream over an already-open streaming response.

        Args:
            response: Open streaming response.
            description: Label used in diagnostics, e.g. `TaskRun metadata.name=run-1`.
        """

        self._response = response
        self._description = description
        self._closed = False

    def stream_iter_events(self) -> Iterator[StreamEvent]:
        """Yield mapped change events until the server ends the watch.

        Returns:
            Iterator[StreamEvent]: Events in delivery order.

        Raises:
            ControlPlaneWatchError: Raised when the server sends an `ERROR` frame.
            ControlPlaneResponseError: Raised when a frame is not valid JSON.
            ControlPlaneConnectionError: Raised when the transport fails mid-stream.
            MappingContractViolationError: Raised when a frame object has an invalid shape.
        """

        try:
            for line in self._response.iter_lines():
                if not line.strip():
                    continue
                frame = self._stream_decode_frame(line)
                frame_type = str(frame.get("type") or "")
                if frame_type == self._BOOKMARK_FRAME_TYPE:
                    continue
                if frame_type == self._ERROR_FRAME_TYPE:
                    error_object = frame.get("object") or {}
                    raise ControlPlaneWatchError(
                        f"watch {self._description} failed: {error_object.get('message', 'unknown error')}",
                        status_code=error_object.get("code"),
                    )
                yield mapping_parse_watch_frame(frame)
        except (httpx.HTTPError, httpx.StreamError) as error:
            if self._closed:
                return
            raise ControlPlaneConnectionError(f"watch {self._description} transport failed") from error
        if not self._closed:
            logger.debug("watch %s ended by server", self._description)

    def stream_close(self) -> None:
        """Close the underlying response. Safe to call more than once.

        Closing the response alone does not interrupt a thread blocked reading
        an idle watch, so the socket is shut down first. The blocked read then
        returns and `stream_iter_events` ends quietly.
        """

        if self._closed:
            return
        self._closed = True
        self._stream_shutdown_socket()
        self._response.close()

    def _stream_shutdown_socket(self) -> None:
        network_stream = self._response.extensions.get("network_stream")
        if network_stream is None:
            return
        raw_socket = network_stream.get_extra_info("socket")
        if raw_socket is None:
            return
        try:
            raw_socket.shutdown(socket.SHUT_RDWR)
        except OSError as error:
            logger.debug("watch %s socket already disconnected: %s", self._description, error)

    def _stream_decode_frame(self, line: str) -> dict[str, Any]:
        try:
            frame = json.loads(line)
        except json.JSONDecodeError as error:
            raise ControlPlaneResponseError(f"watch {self._description} sent a non-JSON frame") from error
        if not isinstance(frame, dict):
            raise ControlPlaneResponseError(f"watch {self._description} sent a non-object frame")
        return frame


class KubernetesControlPlaneAdapter(ControlPlanePort):
    """Control-plane client speaking the Kubernetes REST API, bound to one namespace."""

    _USER_AGENT: Final[str] = "runwatch/1.0 (Python/httpx)"

    def __init__(
        self,
        base_url: str,
        namespace: str,
        token: str | None = None,
        verify_tls: bool = True,
        ca_bundle_path: str | None = None,
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize Kubernetes REST adapter.

        Args:
            base_url: API server base URL.
            namespace: Namespace every call is scoped to.
            token: Optional bearer token.
            verify_tls: Whether to verify the server certificate.
            ca_bundle_path: Optional CA bundle used for verification.
            request_timeout_seconds: Timeout for non-watch requests.
            transport: Optional httpx transport override.

        Raises:
            ValueError: Raised when required config values are invalid.
        """

        normalized_base_url = base_url.strip()
        normalized_namespace = namespace.strip()
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if not normalized_namespace:
            raise ValueError("namespace must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        headers = {"User-Agent": self._USER_AGENT, "Accept": "application/json"}
        normalized_token = (token or "").strip()
        if normalized_token:
            headers["Authorization"] = f"Bearer {normalized_token}"

        verify: bool | ssl.SSLContext = verify_tls
        if verify_tls and ca_bundle_path:
            verify = ssl.create_default_context(cafile=ca_bundle_path)

        self._base_url = normalized_base_url.rstrip("/")
        self._namespace = normalized_namespace
        self._request_timeout_seconds = request_timeout_seconds
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            verify=verify,
            timeout=request_timeout_seconds,
            transport=transport,
        )

    def adapter_namespace(self) -> str:
        return self._namespace

    def adapter_connection_label(self) -> str:
        """Return API server URL for diagnostics."""

        return self._base_url

    def adapter_close(self) -> None:
        """Close pooled HTTP connections."""

        self._client.close()

    def adapter_check_health(self) -> HealthStatus:
        """Verify API server reachability via the `/version` endpoint.

        Returns:
            HealthStatus: Health payload carrying the server `gitVersion`.

        Raises:
            ConnectionError: Raised when the API server is unreachable.
        """

        try:
            version_payload = self._adapter_request_json("GET", "/version", context_label="version")
        except ControlPlaneError as error:
            raise ControlPlaneConnectionError(f"control plane health check failed: {error}") from error
        git_version = str(version_payload.get("gitVersion") or "").strip() or None
        return HealthStatus(status="ok", detail="control plane reachable", server_version=git_version)

    def adapter_get_resource(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("name must not be blank")
        return self._adapter_request_json(
            "GET",
            resource_item_path(kind, self._namespace, normalized_name),
            context_label=f"get {kind.value}/{normalized_name}",
        )

    def adapter_create_resource(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create one resource in the bound namespace.

        Args:
            manifest: Resource manifest including `kind`.

        Returns:
            dict[str, Any]: Created manifest with server-assigned fields.

        Raises:
            ValueError: Raised when the manifest kind is unsupported.
            ControlPlaneConflictError: Raised when the resource already exists.
            ControlPlaneError: Raised for other transport failures.
        """

        kind = domain_resource_kind_from_value(str(manifest.get("kind") or ""))
        created_manifest = self._adapter_request_json(
            "POST",
            resource_collection_path(kind, self._namespace),
            context_label=f"create {kind.value}",
            json_body=manifest,
        )
        logger.info(
            "created %s %s",
            kind.value,
            (created_manifest.get("metadata") or {}).get("name", ""),
            extra={"structured": {"namespace": self._namespace, "kind": kind.value}},
        )
        return created_manifest

    def adapter_delete_resource(self, kind: ResourceKind, name: str) -> None:
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("name must not be blank")
        self._adapter_request_json(
            "DELETE",
            resource_item_path(kind, self._namespace, normalized_name),
            context_label=f"delete {kind.value}/{normalized_name}",
        )

    def adapter_watch_resources(
        self,
        kind: ResourceKind,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> EventStreamPort:
        """Open a watch subscription scoped to the bound namespace.

        Args:
            kind: Resource kind to watch.
            field_selector: Optional field selector expression.
            label_selector: Optional label selector expression.

        Returns:
            EventStreamPort: Open subscription; caller must close it.

        Raises:
            ControlPlaneError: Raised when the subscription cannot be opened.
        """

        query_parameters = {"watch": "true"}
        selectors: list[str] = []
        if field_selector:
            query_parameters["fieldSelector"] = field_selector
            selectors.append(field_selector)
        if label_selector:
            query_parameters["labelSelector"] = label_selector
            selectors.append(label_selector)
        description = f"{kind.value} {' '.join(selectors) or '*'}"

        request = self._client.build_request(
            "GET",
            resource_collection_path(kind, self._namespace),
            params=query_parameters,
            timeout=httpx.Timeout(self._request_timeout_seconds, read=None),
        )
        response = self._adapter_send(request, context_label=f"watch {description}", stream=True)
        try:
            self._adapter_raise_for_status(response, context_label=f"watch {description}")
        except ControlPlaneError:
            response.close()
            raise
        logger.debug("watch %s opened", description)
        return KubernetesWatchStream(response=response, description=description)

    def _adapter_request_json(
        self,
        method: str,
        path: str,
        context_label: str,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute one request and decode a JSON object body.

        Args:
            method: HTTP method.
            path: Request path relative to the base URL.
            context_label: Context label for error messages.
            json_body: Optional JSON request body.

        Returns:
            dict[str, Any]: Decoded response object.

        Raises:
            ControlPlaneError: Raised for transport, status or decoding failures.
        """

        request = self._client.build_request(method, path, json=json_body)
        response = self._adapter_send(request, context_label=context_label)
        self._adapter_raise_for_status(response, context_label=context_label)
        try:
            payload = response.json()
        except ValueError as error:
            raise ControlPlaneResponseError(f"{context_label} returned a non-JSON body") from error
        if not isinstance(payload, dict):
            raise ControlPlaneResponseError(f"{context_label} returned a non-object body")
        return payload

    def _adapter_send(self, request: httpx.Request, context_label: str, stream: bool = False) -> httpx.Response:
        try:
            return self._client.send(request, stream=stream)
        except httpx.TimeoutException as error:
            raise ControlPlaneTimeoutError(f"{context_label} timed out") from error
        except httpx.HTTPError as error:
            raise ControlPlaneConnectionError(f"{context_label} transport failed") from error

    def _adapter_raise_for_status(self, response: httpx.Response, context_label: str) -> None:
        """Map non-success HTTP statuses to typed control-plane errors.

        Raises:
            ControlPlaneAuthError: Raised for `401`/`403`.
            ControlPlaneNotFoundError: Raised for `404`.
            ControlPlaneConflictError: Raised for `409`.
            ControlPlaneConnectionError: Raised for any other status >= 400.
        """

        status_code = response.status_code
        if status_code < 400:
            return
        if status_code in (401, 403):
            raise ControlPlaneAuthError(f"{context_label} rejected credentials: HTTP {status_code}", status_code)
        if status_code == 404:
            raise ControlPlaneNotFoundError(f"{context_label} not found", status_code)
        if status_code == 409:
            raise ControlPlaneConflictError(f"{context_label} conflicted with an existing resource", status_code)
        raise ControlPlaneConnectionError(f"{context_label} failed: HTTP {status_code}", status_code)
