# src/services/dispatch_api/security.py
"""
Хеширование паролей (Argon2id) и токены доступа (JWT HS256).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

from src.common.logger import get_logger

logger = get_logger()


class PasswordService:
    """Argon2id хеширование паролей."""

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 1,
    ) -> None:
        self._hasher = PasswordHasher(
            type=Type.ID,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """True, если пароль совпадает с хешем. Битый хеш считается несовпадением."""
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False


class TokenService:
    """Выпуск и проверка JWT с идентификатором пользователя в sub."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_days: int = 30) -> None:
        if not secret:
            # Токены перестают быть валидными после перезапуска процесса
            logger.warning("JWT_SECRET не задан, используется случайный секрет процесса")
            secret = secrets.token_urlsafe(48)
        self._secret = secret
        self._algorithm = algorithm
        self._expire = timedelta(days=expire_days)

    def issue(self, user_id: str, role: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": user_id,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self._expire,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> str | None:
        """
        Returns:
            Идентификатор пользователя или None для невалидного/просроченного токена
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            logger.debug("Токен отклонён: %s", e)
            return None
        user_id = payload.get("sub")
        return user_id if isinstance(user_id, str) and user_id else None
