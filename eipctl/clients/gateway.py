"""Client for the cloud VPC API (publicips, bandwidths, ports)."""

import httpx
from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from eipctl.config import settings
from eipctl.core.exceptions import GatewayError, NotFoundError
from eipctl.models.bandwidth import Bandwidth
from eipctl.models.eip import EipAddress
from eipctl.models.port import Port
from eipctl.utils.logger import get_logger, log_timer
from eipctl.utils.telemetry import get_tracer, add_span_attributes, add_span_event

logger = get_logger(__name__)
tracer = get_tracer()


class GatewayClient:
    """Synchronous client for the VPC API.

    The control loop is blocking, so this client is too. A single client
    (and its connection pool) can be shared by every resolver and
    controller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        project_id: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: VPC endpoint, defaults to ``settings.GATEWAY_URL``
            project_id: Project scoping the publicip/bandwidth paths
            token: Optional auth token sent as ``X-Auth-Token``
            timeout: Request timeout in seconds
        """
        self.base_url = base_url or settings.GATEWAY_URL
        self.project_id = project_id if project_id is not None else settings.GATEWAY_PROJECT_ID
        token = token if token is not None else settings.GATEWAY_TOKEN

        headers = {"Content-Type": "application/json"}
        if token:
            headers["X-Auth-Token"] = token

        self.client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or settings.GATEWAY_TIMEOUT,
        )

    def _publicips(self, eip_id: Optional[str] = None) -> str:
        path = f"/v1/{self.project_id}/publicips"
        return f"{path}/{eip_id}" if eip_id else path

    def _bandwidths(self, bandwidth_id: str) -> str:
        return f"/v1/{self.project_id}/bandwidths/{bandwidth_id}"

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        context: Dict[str, Any],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Issue one request and return the decoded JSON body.

        Raises:
            NotFoundError: On HTTP 404
            GatewayError: On any other HTTP or transport failure, or a body
                that is not JSON
        """
        with tracer.start_as_current_span(f"gateway.{operation}") as span:
            add_span_attributes(
                **{"gateway.operation": operation, "http.method": method},
                **{f"gateway.{key}": str(value) for key, value in context.items()},
            )

            try:
                with log_timer(f"gateway_{operation}", logger):
                    response = self.client.request(method, path, **kwargs)
                    response.raise_for_status()

                if not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError as e:
                    logger.error(
                        "Gateway returned a non-JSON body",
                        extra={
                            "operation": operation,
                            "status_code": response.status_code,
                            "error": str(e),
                            **context,
                        },
                    )
                    span.record_exception(e)
                    raise GatewayError(
                        f"{operation}: response is not valid JSON",
                        operation=operation,
                        status_code=response.status_code,
                        **context,
                    ) from e

            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    logger.info(
                        "Gateway resource not found",
                        extra={"operation": operation, **context},
                    )
                    raise NotFoundError(
                        f"{operation}: resource not found", operation=operation, **context
                    ) from e

                logger.error(
                    "Gateway request failed",
                    extra={
                        "operation": operation,
                        "status_code": e.response.status_code,
                        "error": e.response.text,
                        "error_type": "HTTPStatusError",
                        **context,
                    },
                )
                span.record_exception(e)
                raise GatewayError(
                    f"{operation} failed: {e.response.text}",
                    operation=operation,
                    status_code=e.response.status_code,
                    **context,
                ) from e

            except httpx.RequestError as e:
                logger.error(
                    "Gateway request failed",
                    extra={
                        "operation": operation,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        **context,
                    },
                )
                span.record_exception(e)
                raise GatewayError(
                    f"Gateway request failed: {str(e)}", operation=operation, **context
                ) from e

    def _parse(self, operation: str, model: Any, data: Any, context: Dict[str, Any]):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(
                "Malformed gateway response",
                extra={"operation": operation, "error": str(e), **context},
            )
            raise GatewayError(
                f"{operation}: malformed response", operation=operation, **context
            ) from e

    def create_eip(self, body: Dict[str, Any]) -> EipAddress:
        """
        Allocate an EIP.

        Args:
            body: Vendor request body (``publicip`` and ``bandwidth`` sections)

        Returns:
            The allocated EIP, bound to this client
        """
        context = {"bgp_type": body.get("publicip", {}).get("type")}
        logger.info("Allocating EIP", extra=context)

        data = self._request("create_eip", "POST", self._publicips(), context, json=body)
        eip = self._parse("create_eip", EipAddress, data.get("publicip"), context)

        add_span_event("eip_allocated", {"eip.id": eip.id})
        logger.info(
            "EIP allocated successfully",
            extra={"eip_id": eip.id, "ip": eip.public_ip_address},
        )
        return eip.bind(self)

    def get_eip(self, eip_id: str) -> EipAddress:
        context = {"eip_id": eip_id}
        data = self._request("get_eip", "GET", self._publicips(eip_id), context)
        return self._parse("get_eip", EipAddress, data.get("publicip"), context).bind(self)

    def delete_eip(self, eip_id: str) -> None:
        self._request("delete_eip", "DELETE", self._publicips(eip_id), {"eip_id": eip_id})

    def update_eip_port(self, eip_id: str, port_id: Optional[str]) -> None:
        """Bind the EIP to ``port_id``, or unbind it when ``port_id`` is None."""
        self._request(
            "update_eip_port",
            "PUT",
            self._publicips(eip_id),
            {"eip_id": eip_id, "port_id": port_id},
            json={"publicip": {"port_id": port_id}},
        )

    def update_bandwidth(self, bandwidth_id: str, size_mbps: int) -> None:
        self._request(
            "update_bandwidth",
            "PUT",
            self._bandwidths(bandwidth_id),
            {"bandwidth_id": bandwidth_id, "size": size_mbps},
            json={"bandwidth": {"size": size_mbps}},
        )

    def get_bandwidth(self, bandwidth_id: str) -> Bandwidth:
        context = {"bandwidth_id": bandwidth_id}
        data = self._request("get_bandwidth", "GET", self._bandwidths(bandwidth_id), context)
        return self._parse("get_bandwidth", Bandwidth, data.get("bandwidth"), context)

    def list_ports(self, device_id: str) -> List[Port]:
        context = {"device_id": device_id}
        data = self._request(
            "list_ports", "GET", "/v2.0/ports", context, params={"device_id": device_id}
        )
        return [
            self._parse("list_ports", Port, item, context)
            for item in data.get("ports") or []
        ]

    def get_port(self, port_id: str) -> Port:
        context = {"port_id": port_id}
        data = self._request("get_port", "GET", f"/v2.0/ports/{port_id}", context)
        return self._parse("get_port", Port, data.get("port"), context)

    def close(self):
        """Close HTTP client."""
        self.client.close()
