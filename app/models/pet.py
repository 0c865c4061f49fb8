# app/models/pet.py
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum
import logging

from app.utils.datetime_utils import DateTimeUtils


class PetStatus(Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    ADOPTED = "adopted"
    NOT_AVAILABLE = "not_available"
    FOSTERED = "fostered"


# 승인 시 compare-and-set이 허용하는 직전 상태 (이미 adopted인 경우만 제외)
ADOPTABLE_STATUSES = frozenset(s for s in PetStatus if s is not PetStatus.ADOPTED)
# 관리자가 직접 전환할 수 있는 상태. pending은 워크플로우 소유, adopted는 종착 상태
ADMIN_MANAGED_STATUSES = frozenset({PetStatus.AVAILABLE, PetStatus.NOT_AVAILABLE, PetStatus.FOSTERED})
# 워크플로우만 쓸 수 있는 필드
WORKFLOW_FIELDS = frozenset({'status', 'adopted_by', 'adoption_date'})

SPECIES = ['dog', 'cat', 'bird', 'rabbit', 'hamster', 'guinea_pig', 'fish', 'reptile', 'other']
AGE_CATEGORIES = ['baby', 'young', 'adult', 'senior']
SIZES = ['small', 'medium', 'large', 'extra_large']
GENDERS = ['male', 'female', 'unknown']
HEALTH_STATUSES = ['excellent', 'good', 'fair', 'poor', 'critical']
TEMPERAMENTS = ['calm', 'playful', 'shy', 'energetic', 'independent', 'affectionate', 'protective', 'social']


@dataclass
class Pet:
    """
    Firestore 'pets' 컬렉션 문서 구조.
    status == adopted 이면 adopted_by, adoption_date가 모두 채워져 있어야 하고, 그 반대도 성립해야 합니다.
    """
    pet_id: str
    name: str
    species: str
    breed: str
    age: str
    description: str
    size: str = 'medium'
    gender: str = 'unknown'
    health_status: str = 'good'
    temperament: List[str] = field(default_factory=list)
    is_featured: bool = False
    status: PetStatus = PetStatus.AVAILABLE
    adopted_by: Optional[str] = None
    adoption_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pet":
        """Firestore 문서 딕셔너리로부터 Pet 인스턴스를 생성합니다. 알 수 없는 필드는 무시합니다."""
        known = {f.name for f in fields(cls)}
        processed_data = {k: v for k, v in DateTimeUtils.from_firestore(data).items() if k in known}

        status_str = processed_data.get('status')
        if isinstance(status_str, str):
            try:
                processed_data['status'] = PetStatus(status_str)
            except ValueError:
                logging.warning(f"Invalid PetStatus value '{status_str}' for pet {processed_data.get('pet_id')}. Treating as not_available.")
                processed_data['status'] = PetStatus.NOT_AVAILABLE

        if processed_data.get('temperament') is None:
            processed_data['temperament'] = []

        return cls(**processed_data)

    def to_dict(self) -> Dict[str, Any]:
        pet_dict = asdict(self)
        pet_dict['status'] = self.status.value
        return pet_dict

    def has_consistent_adoption(self) -> bool:
        is_adopted = self.status is PetStatus.ADOPTED
        return is_adopted == (self.adopted_by is not None and self.adoption_date is not None)
