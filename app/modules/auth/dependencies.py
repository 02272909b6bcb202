"""
Dependencias de identidad para FastAPI.

La autenticación la resuelve un proveedor externo; aquí solo se valida el
token y se extrae la identidad (uid, nombre, rol) del actor.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError
import jwt
import logging

from app.modules.auth.schemas import AuthContext, ALL_ROLES
from app.modules.auth.utils import decode_token

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_auth_context(
        credentials: HTTPAuthorizationCredentials = Depends(security),
    ) -> AuthContext:
        """
        Obtener la identidad del actor desde el token JWT.
        Sin identidad válida no se puede atribuir la operación: 401.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None:
            raise credentials_exception

        try:
            payload = decode_token(credentials.credentials)
        except jwt.PyJWTError:
            raise credentials_exception

        if payload.get("type", "access") != "access":
            raise credentials_exception

        try:
            return AuthContext(
                user_id=payload.get("sub") or "",
                user_name=payload.get("name") or "",
                user_role=payload.get("role"),
            )
        except ValidationError:
            logger.warning("Token sin identidad completa (sub, name, role)")
            raise credentials_exception

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependencia para requerir roles específicos.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if auth_context.user_role.value not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Se requiere uno de estos roles: {', '.join(allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_supervisor():
        """Dependencia para requerir rol de supervisor o admin."""
        return AuthDependencies.require_role(["supervisor", "admin"])

    @staticmethod
    def require_any_role():
        """Dependencia que requiere cualquier rol válido."""
        return AuthDependencies.require_role(ALL_ROLES)


# Instancias de dependencias
get_auth_context = AuthDependencies.get_auth_context
require_supervisor = AuthDependencies.require_supervisor
require_any_role = AuthDependencies.require_any_role
