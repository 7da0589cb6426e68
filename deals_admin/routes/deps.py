"""Request dependencies: stores, gateway and the authenticated caller."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from deals_admin.services.auth import Caller, resolve_caller
from deals_admin.services.gateway import ActionGateway

bearer_scheme = HTTPBearer(auto_error=False)


def get_gateway(request: Request) -> ActionGateway:
    return request.app.state.gateway


async def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    """Resolve the bearer token to a Caller.

    Only authentication happens here; the admin role is enforced by the
    gateway so that every entry point shares one check.
    """
    token = credentials.credentials if credentials else None
    return await resolve_caller(request.app.state.auth_client, request.app.state.db, token)
