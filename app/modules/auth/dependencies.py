"""
Dependencias de autenticación para FastAPI.

La emisión de tokens y la sesión viven fuera de este servicio. Aquí solo se
resuelve el actor actual a partir de un Bearer JWT opcional. Sin token, o con
un token inválido, la mutación no se bloquea: el actor es anónimo.
"""
from typing import Optional
from uuid import UUID
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from app.core.config import settings
from app.modules.auth.schemas import AuthContext

logger = logging.getLogger(__name__)

# Security scheme (optional: offline clients may not send a token)
security = HTTPBearer(auto_error=False)


def decode_actor_token(token: str) -> dict:
    """Decodificar el JWT del actor. Devuelve {} si no se puede validar."""
    try:
        return jwt.decode(
            token,
            settings.APP_SECRET_STRING,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Ignoring invalid actor token: {e}")
        return {}


def _parse_uuid(value) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_auth_context(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
    ) -> AuthContext:
        """
        Obtener contexto (tenant + actor).

        - tenant: X-Company-ID (vía TenantMiddleware) > claim tenant_id > tenant por defecto
        - actor: claims sub / name del token, o el placeholder anónimo
        """
        payload = decode_actor_token(credentials.credentials) if credentials else {}

        user_id = _parse_uuid(payload.get("sub"))
        user_name = payload.get("name") or payload.get("email") or settings.ANONYMOUS_USER_NAME

        tenant_id = (
            getattr(request.state, "tenant_id", None)
            or _parse_uuid(payload.get("tenant_id"))
            or settings.DEFAULT_TENANT_ID
        )

        return AuthContext(user_id=user_id, user_name=user_name, tenant_id=tenant_id)


# Instancias de dependencias
get_auth_context = AuthDependencies.get_auth_context
