# app/core/security.py
"""
Identity Provider 어댑터.

토큰 검증은 Flask-JWT-Extended에 맡기고, 검증된 클레임을 Principal 값으로 바꾸는 일만 합니다.
서비스 계층은 Principal만 받으므로 요청 컨텍스트 없이도 권한 검사를 테스트할 수 있습니다.
"""
import logging
from typing import Any, Dict

import jwt
from flask import current_app
from flask_jwt_extended import create_access_token, decode_token, get_jwt

from app.core.errors import AuthError, ForbiddenError
from app.models.user import Principal, Role


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """검증이 끝난 JWT 클레임에서 Principal을 만듭니다."""
    user_id = claims.get(current_app.config.get('JWT_IDENTITY_CLAIM', 'sub'))
    if not user_id:
        raise AuthError("토큰에 사용자 식별자가 없습니다.")

    role_value = claims.get(current_app.config['ROLE_CLAIM'], Role.USER.value)
    try:
        role = Role(role_value)
    except ValueError:
        logging.warning(f"Unknown role claim '{role_value}' for user {user_id}")
        raise AuthError("알 수 없는 사용자 역할입니다.")
    return Principal(user_id=str(user_id), role=role)


def authenticate(credential: str) -> Principal:
    """원시 Bearer 토큰을 검증하고 Principal을 반환합니다. 실패 시 AuthError."""
    if not credential:
        raise AuthError()
    try:
        claims = decode_token(credential)
    except jwt.ExpiredSignatureError:
        raise AuthError("토큰이 만료되었습니다.")
    except jwt.InvalidTokenError:
        raise AuthError("유효하지 않은 토큰입니다.")
    return principal_from_claims(claims)


def current_principal() -> Principal:
    """@jwt_required()가 붙은 라우트 안에서 현재 호출자의 Principal을 반환합니다."""
    return principal_from_claims(get_jwt())


def issue_access_token(user_id: str, role: Role = Role.USER) -> str:
    """역할 클레임을 포함한 Access Token을 발급합니다. 자격 증명 확인은 호출하는 쪽의 책임입니다."""
    return create_access_token(
        identity=user_id,
        additional_claims={current_app.config['ROLE_CLAIM']: role.value}
    )


def require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        logging.warning(f"Admin-only operation attempted by user {principal.user_id}")
        raise ForbiddenError("관리자만 수행할 수 있는 작업입니다.")
