"""Domain exceptions shared by services, workers and API handlers."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class RealtySignError(Exception):
    """Base class for expected, non-fatal application errors."""


class NoPlanAssigned(RealtySignError):
    """Tenant has no plan reference, or the referenced plan does not exist."""

    def __init__(self, tenant_id: object) -> None:
        super().__init__(f"No subscription plan assigned to tenant {tenant_id}")
        self.tenant_id = tenant_id


class QuotaExceeded(RealtySignError):
    """A metered action was denied by the quota gate."""

    def __init__(self, resource_kind: str, current: int, limit: int, message: str) -> None:
        super().__init__(message)
        self.resource_kind = resource_kind
        self.current = current
        self.limit = limit
        self.message = message


class UpstreamServiceFailure(RealtySignError):
    """The AI parser or the e-signature provider failed."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message


class NotificationDeliveryFailure(RealtySignError):
    """The email provider rejected or could not accept a message."""


def setup_error_handling(app: FastAPI) -> None:
    @app.exception_handler(QuotaExceeded)
    async def quota_exceeded_handler(_request: Request, exc: QuotaExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            content={
                "detail": exc.message,
                "resource_kind": exc.resource_kind,
                "current": exc.current,
                "limit": exc.limit,
            },
        )
