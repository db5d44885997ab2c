"""Identity collaborator.

Sprint play never requires a login; a valid bearer token only attaches a
user id to the player so the persisted result can be linked to an account.
Tokens are HS256 JWTs carrying ``user_id``.
"""

import time
from dataclasses import dataclass
from typing import Optional

import jwt
from flask import current_app

from tapsprint import db
from tapsprint.models import User


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str


def issue_token(user: User, ttl_sec: int = None) -> str:
    cfg = current_app.config
    ttl = ttl_sec if ttl_sec is not None else int(cfg.get('TOKEN_TTL_SEC', 86400))
    payload = {
        'user_id': user.id,
        'username': user.username,
        'role': user.role,
        'exp': int(time.time()) + ttl,
    }
    return jwt.encode(payload, cfg['SECRET_KEY'], algorithm=cfg.get('TOKEN_ALGORITHM', 'HS256'))


def load_user_from_token(token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    cfg = current_app.config
    try:
        payload = jwt.decode(token, cfg['SECRET_KEY'], algorithms=[cfg.get('TOKEN_ALGORITHM', 'HS256')])
    except jwt.ExpiredSignatureError:
        current_app.logger.info('[identity] token expired')
        return None
    except jwt.InvalidTokenError:
        current_app.logger.info('[identity] invalid token')
        return None
    try:
        user_id = int(payload['user_id'])
    except (KeyError, TypeError, ValueError):
        current_app.logger.info('[identity] token has no usable user_id')
        return None
    return db.session.get(User, user_id)


def resolve_identity(token: Optional[str]) -> Optional[Identity]:
    user = load_user_from_token(token)
    if user is None:
        return None
    return Identity(user_id=user.id, role=user.role)


def bearer_token(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    parts = header_value.split(' ', 1)
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        return None
    return parts[1].strip() or None
