"""Power controller (CAPMC) operations."""

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from ..exceptions import MalformedResponseError, UpstreamError
from ..models import PowerAction, PowerOperation, PowerStatus, parse_model

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "capmc"


def _check_capmc_response(payload: Any, action: str) -> Dict[str, Any]:
    """CAPMC reports failures in-band through a non-zero ``e`` field."""
    if not isinstance(payload, dict):
        return {}

    if payload.get("e", 0) != 0:
        failed: List[str] = [
            f"{item.get('xname')}: {item.get('err_msg')}"
            for item in payload.get("xnames") or []
            if isinstance(item, dict) and item.get("e", 0) != 0
        ]
        detail = payload.get("err_msg") or "unknown error"
        if failed:
            detail = f"{detail} ({'; '.join(failed)})"
        raise UpstreamError(f"CAPMC {action} failed", detail=detail, service=SERVICE)
    return payload


class CAPMCService:
    """Service class for node power operations."""

    def __init__(self, client: "CSMClient", sleep: Callable[[float], None] = time.sleep):
        """Initialize CAPMC service."""
        self.client = client
        self._sleep = sleep

    def get_power_status(self, nodes: Sequence[str]) -> PowerStatus:
        """Get on/off status for the given nodes."""
        try:
            payload = self.client.post(
                "/capmc/capmc/v1/get_xname_status",
                service=SERVICE,
                json={"xnames": list(nodes)},
            )
        except UpstreamError as e:
            logger.error(f"Failed to get power status for {list(nodes)}: {e}")
            raise

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                "Expected a power status object from capmc",
                detail=f"got {type(payload).__name__}",
                service=SERVICE,
            )
        return parse_model(PowerStatus, _check_capmc_response(payload, "status"), SERVICE)

    def shutdown(self, operation: PowerOperation, wait: bool = True) -> Dict[str, Any]:
        """
        Power nodes off.

        With ``operation.synchronous`` and ``wait`` the call only returns once
        every node reports ``off``. Callers that need to know the request was
        accepted before the wait pass ``wait=False`` and call
        ``wait_until_off`` themselves.

        Raises:
            UpstreamError: If CAPMC rejects the request or the nodes do not
                power off within ``power_off_timeout``
        """
        if operation.action != PowerAction.SHUTDOWN:
            raise ValueError(f"Expected a shutdown operation, got {operation.action.value}")

        try:
            payload = self.client.post(
                "/capmc/capmc/v1/xname_off", service=SERVICE, json=operation.to_payload()
            )
        except UpstreamError as e:
            logger.error(f"Failed to power off {operation.nodes}: {e}")
            raise

        result = _check_capmc_response(payload, "shutdown")
        logger.debug("CAPMC shutdown nodes response: %s", result)

        if operation.synchronous and wait:
            self.wait_until_off(operation.nodes)
        return result

    def start(self, operation: PowerOperation) -> Dict[str, Any]:
        """Power nodes on without waiting for them to boot."""
        if operation.action != PowerAction.START:
            raise ValueError(f"Expected a start operation, got {operation.action.value}")

        try:
            payload = self.client.post(
                "/capmc/capmc/v1/xname_on", service=SERVICE, json=operation.to_payload()
            )
        except UpstreamError as e:
            logger.error(f"Failed to power on {operation.nodes}: {e}")
            raise

        result = _check_capmc_response(payload, "start")
        logger.debug("CAPMC starting nodes response: %s", result)
        return result

    def wait_until_off(self, nodes: Sequence[str]) -> None:
        """Poll power status until all nodes are off."""
        config = self.client.config
        poll_seconds = config.power_poll_seconds
        timeout: Optional[float] = config.power_off_timeout
        started = time.monotonic()

        while True:
            status = self.get_power_status(nodes)
            if status.all_off(list(nodes)):
                logger.info("Nodes %s are powered off", list(nodes))
                return

            pending = sorted(set(nodes) - set(status.off))
            if timeout is not None and time.monotonic() - started >= timeout:
                raise UpstreamError(
                    "Timed out waiting for nodes to power off",
                    detail=f"still not off: {', '.join(pending)}",
                    service=SERVICE,
                )

            logger.debug("Waiting for %s to power off", pending)
            self._sleep(poll_seconds)
