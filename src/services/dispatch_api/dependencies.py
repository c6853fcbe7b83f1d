from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.core.geo.service import GeoService
from src.core.jobs.repository import JobRepository
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager
from src.services.dispatch_api.security import PasswordService, TokenService
from src.services.dispatch_api.service import (
    AuthService,
    DriverService,
    InvalidCredentialsError,
    JobService,
)
from src.shared.models.enums import UserRole
from src.shared.models.user_dto import UserDTO

bearer_scheme = HTTPBearer(auto_error=False)


def get_database() -> DatabaseManager:
    return DatabaseManager()


def get_user_repository() -> UserRepository:
    return UserRepository(get_database())


def get_job_repository() -> JobRepository:
    return JobRepository(get_database())


@lru_cache()
def get_password_service() -> PasswordService:
    return PasswordService()


@lru_cache()
def get_token_service() -> TokenService:
    from src.config import settings
    return TokenService(
        secret=settings.auth.JWT_SECRET,
        algorithm=settings.auth.JWT_ALGORITHM,
        expire_days=settings.auth.JWT_EXPIRE_DAYS,
    )


def get_geo_service(request: Request) -> GeoService | None:
    return getattr(request.app.state, "geo", None)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    passwords: PasswordService = Depends(get_password_service),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(users, passwords, tokens)


def get_driver_service(users: UserRepository = Depends(get_user_repository)) -> DriverService:
    return DriverService(users)


def get_job_service(
    jobs: JobRepository = Depends(get_job_repository),
    users: UserRepository = Depends(get_user_repository),
    geo: GeoService | None = Depends(get_geo_service),
) -> JobService:
    return JobService(jobs, users, geo)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> UserDTO:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        return await auth.authenticate(credentials.credentials)
    except InvalidCredentialsError:
        raise unauthorized


def require_roles(*roles: UserRole):
    """Зависимость: текущий пользователь с одной из ролей."""

    async def dependency(user: UserDTO = Depends(get_current_user)) -> UserDTO:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return dependency


require_dispatcher = require_roles(UserRole.DISPATCHER, UserRole.SUPER_ADMIN)
