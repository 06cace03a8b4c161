"""
FastAPI Dependencies
Dependency injection for identity, database sessions and services
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_claims.db.connection import get_session
from expense_claims.models.employee import UserEmployeeBinding
from expense_claims.services.access_policy import Caller
from expense_claims.services.claims_service import ClaimsService
from expense_claims.services.storage import AttachmentStore, get_attachment_store
from expense_claims.utils.auth import decode_token
from expense_claims.utils.errors import AuthenticationError, ForbiddenError
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

# HTTP Bearer token security scheme
# Source: https://swagger.io/docs/specification/authentication/bearer-authentication/
security = HTTPBearer(auto_error=False)


class IdentityResolver:
    """
    Maps an authenticated user to the employee they act as.

    A user id (the token's ``sub``) is bound to exactly one employee through
    ``user_employee_bindings``; the binding also carries the admin flag.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def current_employee(self, token: str) -> Caller:
        payload = decode_token(token)
        if payload is None:
            raise AuthenticationError("Invalid token")
        if payload.get("type", "access") != "access":
            raise AuthenticationError("Invalid token type")

        user_id: str | None = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        result = await self.session.execute(
            select(UserEmployeeBinding).where(UserEmployeeBinding.user_id == str(user_id))
        )
        binding = result.scalar_one_or_none()
        if binding is None:
            logger.info(f"User {user_id} has no employee binding")
            raise ForbiddenError("User is not bound to an employee", user_id=str(user_id))

        return Caller(employee_id=binding.employee_id, is_admin=binding.is_admin)


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Caller:
    """
    Resolve the bearer token to the calling employee.

    Raises:
        AuthenticationError: missing or invalid token
        ForbiddenError: the user is not bound to an employee
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return await IdentityResolver(session).current_employee(credentials.credentials)


async def get_admin_caller(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_admin:
        raise ForbiddenError("Administrator access required")
    return caller


def get_store() -> AttachmentStore:
    return get_attachment_store()


async def get_claims_service(
    session: AsyncSession = Depends(get_session),
    store: AttachmentStore = Depends(get_store),
) -> ClaimsService:
    return ClaimsService(session, store)
