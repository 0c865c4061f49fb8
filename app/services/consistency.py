# app/services/consistency.py
"""
Firestore 단일 문서 원자 연산 위에 만든 일관성 도우미.

펫 문서와 신청서 문서를 하나의 트랜잭션으로 묶지 않으므로, 워크플로우는 아래 두 가지 연산에만 기댑니다.
- create_unique: 문서 ID 자체를 유일 키로 사용하는 create(). 먼저 읽고 쓰는 방식과 달리 경쟁 구간이 없습니다.
- compare_and_set: "현재 값이 Y일 때만 X로 바꾼다". 읽은 시점의 update_time을 전제 조건으로 걸어
  그 사이 다른 쓰기가 있었다면 덮어쓰지 않고 StatusConflictError를 올립니다.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from google.api_core import exceptions as gcp_exceptions

from app.core.errors import ConflictError, NotFoundError, StatusConflictError


class DuplicateKeyError(ConflictError):
    error_code = "DUPLICATE_KEY"
    default_message = "같은 키의 문서가 이미 존재합니다."


def _as_value(value: Any) -> Any:
    return getattr(value, 'value', value)


def create_unique(doc_ref, data: Dict[str, Any]) -> None:
    """문서가 없을 때만 생성합니다. 이미 있으면 DuplicateKeyError."""
    try:
        doc_ref.create(data)
    except gcp_exceptions.AlreadyExists as e:
        raise DuplicateKeyError(doc_id=doc_ref.id) from e


def compare_and_set(db, doc_ref, field: str, expected: Optional[Iterable[Any]], next_value: Any,
                    extra_fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    doc_ref의 field가 expected 중 하나일 때만 next_value로 바꾸고, 변경 전 문서를 반환합니다.

    :param expected: 허용하는 직전 값 목록. None이면 값 비교 없이 쓰되 문서 존재 여부는 확인합니다.
    :raises NotFoundError: 문서가 없는 경우
    :raises StatusConflictError: 현재 값이 expected에 없거나(current_status 설정),
        읽은 뒤 다른 쓰기가 먼저 반영된 경우(current_status=None)
    """
    snapshot = doc_ref.get()
    if not snapshot.exists:
        raise NotFoundError(doc_id=doc_ref.id)

    previous = snapshot.to_dict()
    current = previous.get(field)
    if expected is not None:
        allowed = {_as_value(v) for v in expected}
        if current not in allowed:
            raise StatusConflictError(current_status=current, doc_id=doc_ref.id)

    payload = {field: _as_value(next_value)}
    payload.update(extra_fields or {})
    try:
        doc_ref.update(payload, option=db.write_option(last_update_time=snapshot.update_time))
    except gcp_exceptions.FailedPrecondition as e:
        logging.info(f"Compare-and-set lost a race on {doc_ref.id} ({field}: {current} -> {payload[field]})")
        raise StatusConflictError(current_status=None, doc_id=doc_ref.id) from e
    except gcp_exceptions.NotFound as e:
        raise NotFoundError(doc_id=doc_ref.id) from e
    return previous


def delete_if(db, doc_ref, field: str, expected: Iterable[Any]) -> Dict[str, Any]:
    """field가 expected 중 하나인 문서만 삭제하고, 삭제된 문서를 반환합니다. 예외 규칙은 compare_and_set과 같습니다."""
    snapshot = doc_ref.get()
    if not snapshot.exists:
        raise NotFoundError(doc_id=doc_ref.id)

    previous = snapshot.to_dict()
    current = previous.get(field)
    if current not in {_as_value(v) for v in expected}:
        raise StatusConflictError(current_status=current, doc_id=doc_ref.id)

    try:
        doc_ref.delete(option=db.write_option(last_update_time=snapshot.update_time))
    except (gcp_exceptions.FailedPrecondition, gcp_exceptions.NotFound) as e:
        raise StatusConflictError(current_status=None, doc_id=doc_ref.id) from e
    return previous
