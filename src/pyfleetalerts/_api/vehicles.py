"""Vehicle registry lookup."""

from __future__ import annotations

from pydantic import ValidationError

from pyfleetalerts._api._common import unwrap_envelope
from pyfleetalerts._constants import CHECK_REGISTRATION_ENDPOINT
from pyfleetalerts._transport import Transport
from pyfleetalerts.exceptions import FleetApiError
from pyfleetalerts.models.vehicle import RegistrationResult


async def check_registration(transport: Transport, tenant_id: str, device_id: str) -> RegistrationResult:
    """Resolve the vehicle owning *device_id* within *tenant_id*."""
    response = await transport.request(
        "POST",
        CHECK_REGISTRATION_ENDPOINT,
        json_body={"tenantId": tenant_id, "deviceId": device_id},
    )
    data = unwrap_envelope(endpoint=CHECK_REGISTRATION_ENDPOINT, response=response)
    # Some deployments put isRegistered next to success instead of under data.
    if data is None and isinstance(response, dict):
        data = response
    if not isinstance(data, dict):
        raise FleetApiError(
            f"{CHECK_REGISTRATION_ENDPOINT} returned {type(data).__name__}, expected an object",
            endpoint=CHECK_REGISTRATION_ENDPOINT,
        )
    try:
        result = RegistrationResult.model_validate(data)
    except ValidationError as exc:
        raise FleetApiError(
            f"{CHECK_REGISTRATION_ENDPOINT} returned an invalid vehicle: {exc}",
            endpoint=CHECK_REGISTRATION_ENDPOINT,
        ) from exc

    vehicle = result.vehicle
    if vehicle is not None and not vehicle.device_id:
        result = result.model_copy(update={"vehicle": vehicle.model_copy(update={"device_id": device_id})})
    return result
