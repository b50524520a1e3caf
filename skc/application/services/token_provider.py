from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt

from ...domain.models import ErrorKind, Outcome, Principal

logger = logging.getLogger(__name__)

AUTHORITIES_KEY = "auth"


class TokenProvider:
    """Issues and verifies HMAC-signed bearer tokens carrying the user's authorities."""

    def __init__(
        self,
        *,
        token_validity_seconds: int,
        token_validity_seconds_for_remember_me: int,
        secret: Optional[str] = None,
        base64_secret: Optional[str] = None,
        algorithm: str = "HS512",
    ) -> None:
        if secret:
            logger.warning(
                "Warning: the JWT key used is not Base64-encoded. "
                "We recommend using JWT_BASE64_SECRET for optimum security."
            )
            key = secret.encode("utf-8")
        elif base64_secret:
            logger.debug("Using a Base64-encoded JWT secret key")
            try:
                key = base64.b64decode(base64_secret, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise RuntimeError("JWT_BASE64_SECRET is not valid base64.") from exc
        else:
            raise RuntimeError("Either JWT_SECRET or JWT_BASE64_SECRET must be configured.")
        self._key = key
        self._algorithm = algorithm
        self._token_validity = timedelta(seconds=token_validity_seconds)
        self._token_validity_remember_me = timedelta(seconds=token_validity_seconds_for_remember_me)

    def create_token(self, login: str, authorities: Iterable[str], remember_me: bool = False) -> str:
        now = datetime.now(tz=timezone.utc)
        validity = self._token_validity_remember_me if remember_me else self._token_validity
        payload = {
            "sub": login,
            AUTHORITIES_KEY: ",".join(authorities),
            "exp": now + validity,
        }
        return jwt.encode(payload, self._key, algorithm=self._algorithm)

    def get_authentication(self, token: str) -> Outcome[Principal]:
        claims = self._decode(token)
        if claims is None:
            return Outcome.failure(ErrorKind.TOKEN_INVALID)
        subject = claims.get("sub")
        if not subject:
            logger.info("JWT token has no subject.")
            return Outcome.failure(ErrorKind.TOKEN_INVALID)
        authorities = [item for item in str(claims.get(AUTHORITIES_KEY, "")).split(",") if item]
        return Outcome.success(Principal(subject, authorities, token=token))

    def validate_token(self, token: str) -> bool:
        return self._decode(token) is not None

    def _decode(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(
                token,
                self._key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("Expired JWT token.")
            logger.debug("Expired JWT token trace: %s", exc)
        except jwt.InvalidSignatureError as exc:
            logger.info("Invalid JWT signature.")
            logger.debug("Invalid JWT signature trace: %s", exc)
        except jwt.InvalidAlgorithmError as exc:
            logger.info("Unsupported JWT token.")
            logger.debug("Unsupported JWT token trace: %s", exc)
        except jwt.DecodeError as exc:
            logger.info("Malformed JWT token.")
            logger.debug("Malformed JWT token trace: %s", exc)
        except (jwt.InvalidTokenError, TypeError, ValueError) as exc:
            logger.info("JWT token compact of handler are invalid.")
            logger.debug("JWT token compact of handler are invalid trace: %s", exc)
        return None
