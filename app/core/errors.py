# app/core/errors.py
"""
입양 워크플로우의 도메인 예외 정의.

모든 예외는 AdoptionError를 상속하며 error_code / http_status를 스스로 들고 다닙니다.
app/__init__.py의 전역 에러 핸들러가 이 두 값으로 응답을 만들기 때문에,
라우트 코드에서는 예외를 그대로 올려 보내기만 하면 됩니다.
"""
from typing import Any, Dict, Optional


class AdoptionError(Exception):
    """입양 도메인 예외의 최상위 클래스."""
    error_code = "ADOPTION_ERROR"
    http_status = 400
    default_message = "요청을 처리할 수 없습니다."

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {"error_code": self.error_code, "message": self.message}


# --- NotFound ---
class NotFoundError(AdoptionError, LookupError):
    error_code = "NOT_FOUND"
    http_status = 404
    default_message = "요청한 리소스를 찾을 수 없습니다."


class PetNotFoundError(NotFoundError):
    error_code = "PET_NOT_FOUND"
    default_message = "해당 ID의 반려동물을 찾을 수 없습니다."


class ApplicationNotFoundError(NotFoundError):
    error_code = "APPLICATION_NOT_FOUND"
    default_message = "해당 ID의 입양 신청서를 찾을 수 없습니다."


# --- Conflict ---
class ConflictError(AdoptionError):
    error_code = "CONFLICT"
    http_status = 409
    default_message = "현재 상태와 충돌하여 요청을 처리할 수 없습니다."


class DuplicateApplicationError(ConflictError):
    error_code = "DUPLICATE_APPLICATION"
    default_message = "이미 이 반려동물에 입양 신청을 하셨습니다."


class StatusConflictError(ConflictError):
    """compare-and-set 실패. current_status가 None이면 읽은 뒤 다른 쓰기가 먼저 반영된 경우입니다."""
    error_code = "STATUS_CONFLICT"
    default_message = "상태가 이미 변경되어 요청을 적용할 수 없습니다."

    def __init__(self, message: Optional[str] = None, current_status: Optional[str] = None, **context: Any):
        super().__init__(message, **context)
        self.current_status = current_status


class AdoptionConflictError(ConflictError):
    error_code = "ADOPTION_CONFLICT"
    default_message = "이 반려동물은 이미 다른 신청으로 입양이 확정되었습니다."


class ApplicationAlreadyDecidedError(ConflictError):
    error_code = "ALREADY_DECIDED"
    default_message = "이미 처리가 완료된 입양 신청서입니다."


# --- Forbidden / Auth ---
class ForbiddenError(AdoptionError, PermissionError):
    error_code = "FORBIDDEN"
    http_status = 403
    default_message = "이 작업을 수행할 권한이 없습니다."


class AuthError(AdoptionError):
    error_code = "UNAUTHORIZED"
    http_status = 401
    default_message = "유효한 인증 정보가 필요합니다."


# --- Validation ---
class InvalidRequestError(AdoptionError, ValueError):
    """라우트 스키마를 통과했지만 서비스 규칙에 맞지 않는 요청 값 (알 수 없는 상태 필터, 빈 수정 요청 등)."""
    error_code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "요청 값이 올바르지 않습니다."


class ProtectedFieldError(InvalidRequestError):
    """워크플로우 전용 필드(status, adopted_by, decided_date 등)를 일반 수정 경로로 바꾸려는 경우."""
    default_message = "워크플로우가 관리하는 필드는 직접 수정할 수 없습니다."


# --- Internal ---
class InternalInconsistencyError(AdoptionError):
    """
    두 번째 쓰기가 실패해 펫/신청서 상태가 어긋난 경우.
    context에는 운영자 복구용 식별자가 담기지만, 응답에는 절대 포함하지 않습니다.
    """
    error_code = "INTERNAL_SERVER_ERROR"
    http_status = 500
    default_message = "서버 내부에서 예상치 못한 오류가 발생했습니다."

    def to_response(self) -> Dict[str, Any]:
        return {"error_code": self.error_code, "message": self.default_message}
