# app/models/application.py
import math
import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from app.utils.datetime_utils import DateTimeUtils

# (user_id, pet_id) -> 문서 ID 변환용 네임스페이스. 값이 바뀌면 기존 신청서와의 중복 검사가 깨집니다.
APPLICATION_NAMESPACE = uuid.UUID('6f1c2a64-3c0e-5b8e-9a57-0d2f4c1e7b90')

# 신청서 생성 이후 일반 수정 경로로는 바꿀 수 없는 필드
WORKFLOW_FIELDS = frozenset({'status', 'decided_date', 'user_id', 'pet_id', 'applied_date'})


class ApplicationStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


@dataclass
class Application:
    """
    Firestore 'applications' 컬렉션 문서 구조.
    decided_date는 status가 Pending이 아닐 때에만 존재합니다.
    """
    application_id: str
    user_id: str
    pet_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    user_message: Optional[str] = None
    admin_notes: Optional[str] = None
    applied_date: datetime = field(default_factory=DateTimeUtils.now)
    decided_date: Optional[datetime] = None

    @staticmethod
    def id_for(user_id: str, pet_id: str) -> str:
        """같은 (user_id, pet_id) 쌍은 항상 같은 문서 ID를 갖습니다. 중복 신청 방지의 근거입니다."""
        return str(uuid.uuid5(APPLICATION_NAMESPACE, f"{user_id}:{pet_id}"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        known = {f.name for f in fields(cls)}
        processed_data = {k: v for k, v in DateTimeUtils.from_firestore(data).items() if k in known}
        if isinstance(processed_data.get('status'), str):
            processed_data['status'] = ApplicationStatus(processed_data['status'])
        return cls(**processed_data)

    def to_dict(self) -> Dict[str, Any]:
        app_dict = asdict(self)
        app_dict['status'] = self.status.value
        return app_dict

    @property
    def is_decided(self) -> bool:
        return self.status is not ApplicationStatus.PENDING

    @property
    def processing_days(self) -> Optional[int]:
        if not self.decided_date or not self.applied_date:
            return None
        elapsed = self.decided_date - self.applied_date
        return math.ceil(elapsed.total_seconds() / 86400)
