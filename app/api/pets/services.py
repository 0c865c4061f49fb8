# app/api/pets/services.py
import logging
from typing import Any, Dict, List, Optional

from app.core.errors import ConflictError, InvalidRequestError, PetNotFoundError, StatusConflictError
from app.core.security import require_admin
from app.models.pet import ADMIN_MANAGED_STATUSES, Pet, PetStatus
from app.models.user import Principal
from app.services.pet_registry import PetRegistry

FEATURED_LIMIT = 6


class PetService:
    """반려동물 카탈로그(조회/등록/설명 수정/관리 상태 전환)를 담당하는 서비스."""

    def __init__(self, pet_registry: PetRegistry):
        self.pet_registry = pet_registry
        logging.info("PetService initialized with dependencies.")

    def list_pets(self, status: Optional[str] = None, species: Optional[str] = None) -> List[Pet]:
        """status를 생략하면 available만, 'all'이면 전체를 반환합니다."""
        if status == 'all':
            status_filter = None
        else:
            try:
                status_filter = PetStatus(status or PetStatus.AVAILABLE.value)
            except ValueError:
                raise InvalidRequestError(f"알 수 없는 상태 값입니다: {status}", status=status)
        return self.pet_registry.list_pets(status=status_filter, species=species)

    def list_featured(self) -> List[Pet]:
        return self.pet_registry.list_pets(status=PetStatus.AVAILABLE, featured=True, limit=FEATURED_LIMIT)

    def get_pet(self, pet_id: str) -> Pet:
        pet = self.pet_registry.find_by_id(pet_id)
        if pet is None:
            raise PetNotFoundError(pet_id=pet_id)
        return pet

    def register_pet(self, principal: Principal, pet_data: Dict[str, Any]) -> Pet:
        """[관리자 전용] 새 반려동물을 available 상태로 등록합니다."""
        require_admin(principal)
        return self.pet_registry.create(pet_data)

    def update_pet_details(self, principal: Principal, pet_id: str, changes: Dict[str, Any]) -> Pet:
        """[관리자 전용] 설명 정보만 수정합니다."""
        require_admin(principal)
        return self.pet_registry.update_details(pet_id, changes)

    def change_availability(self, principal: Principal, pet_id: str, status: PetStatus) -> Pet:
        """
        [관리자 전용] available / not_available / fostered 사이에서만 상태를 바꿉니다.
        pending(신청 진행 중)이나 adopted(입양 확정) 펫은 ConflictError.
        """
        require_admin(principal)
        if status not in ADMIN_MANAGED_STATUSES:
            raise InvalidRequestError(f"관리자가 직접 지정할 수 없는 상태입니다: {status.value}", status=status.value)
        try:
            self.pet_registry.conditional_update_status(pet_id, expected=ADMIN_MANAGED_STATUSES, next_status=status)
        except StatusConflictError as e:
            raise ConflictError(
                "입양 신청이 진행 중이거나 입양이 확정된 반려동물의 상태는 변경할 수 없습니다.",
                pet_id=pet_id, current_status=e.current_status
            ) from e
        return self.get_pet(pet_id)

    def delete_pet(self, principal: Principal, pet_id: str) -> None:
        """[관리자 전용] pending/adopted 펫은 신청서와의 연결이 끊어지므로 삭제할 수 없습니다."""
        require_admin(principal)
        try:
            self.pet_registry.delete(pet_id, allowed_statuses=ADMIN_MANAGED_STATUSES)
        except StatusConflictError as e:
            raise ConflictError(
                "입양 신청이 진행 중이거나 입양이 확정된 반려동물은 삭제할 수 없습니다.",
                pet_id=pet_id, current_status=e.current_status
            ) from e
