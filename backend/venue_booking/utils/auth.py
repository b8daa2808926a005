from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

from ..domain.services import Principal, Role


def create_access_token(
    *,
    user_id: int,
    secret: str,
    role: Role = Role.USER,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": str(user_id), "role": role.value, "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> Principal:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if sub is None:
        raise ValueError("token missing sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise ValueError("token sub is not an integer") from exc
    try:
        role = Role(payload.get("role", Role.USER.value))
    except ValueError as exc:
        raise ValueError("token role is not recognised") from exc
    return Principal(user_id=user_id, role=role)
