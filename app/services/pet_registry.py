# app/services/pet_registry.py
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

from app.core.errors import InvalidRequestError, NotFoundError, PetNotFoundError, ProtectedFieldError
from app.models.pet import Pet, PetStatus, WORKFLOW_FIELDS
from app.services.consistency import compare_and_set, delete_if
from app.utils.datetime_utils import DateTimeUtils


class PetRegistry:
    """Firestore 'pets' 컬렉션 어댑터. 상태 전환은 compare_and_set / set_status로만 일어납니다."""

    def __init__(self, db=None, collection_name: str = 'pets'):
        self.db = db or firestore.client()
        self.pets_ref = self.db.collection(collection_name)
        logging.info(f"PetRegistry initialized (collection: {collection_name})")

    def find_by_id(self, pet_id: str) -> Optional[Pet]:
        doc = self.pets_ref.document(pet_id).get()
        if not doc.exists:
            return None
        return Pet.from_dict(doc.to_dict())

    def list_pets(self, status: Optional[PetStatus] = None, species: Optional[str] = None,
                  featured: Optional[bool] = None, limit: Optional[int] = None) -> List[Pet]:
        """조건에 맞는 펫 목록을 최신 등록 순으로 반환합니다."""
        query = self.pets_ref
        if status is not None:
            query = query.where('status', '==', status.value)
        if species:
            query = query.where('species', '==', species)
        if featured is not None:
            query = query.where('is_featured', '==', featured)

        pets = [Pet.from_dict(doc.to_dict()) for doc in query.stream()]
        pets.sort(key=lambda p: p.created_at, reverse=True)
        return pets[:limit] if limit else pets

    def create(self, pet_data: Dict[str, Any]) -> Pet:
        """새 펫은 항상 available 상태로, 입양 정보 없이 등록됩니다."""
        if WORKFLOW_FIELDS & set(pet_data):
            raise ProtectedFieldError(fields=sorted(WORKFLOW_FIELDS & set(pet_data)))

        pet_id = str(uuid.uuid4())
        new_pet = Pet(pet_id=pet_id, **pet_data)
        self.pets_ref.document(pet_id).create(DateTimeUtils.for_firestore(new_pet.to_dict()))
        logging.info(f"Pet {pet_id} registered ({new_pet.species}/{new_pet.breed})")
        return new_pet

    def update_details(self, pet_id: str, changes: Dict[str, Any]) -> Pet:
        """설명 필드만 부분 수정합니다. status / adopted_by / adoption_date는 거부합니다."""
        protected = WORKFLOW_FIELDS & set(changes)
        if protected:
            raise ProtectedFieldError(fields=sorted(protected))
        if not changes:
            raise InvalidRequestError("수정할 데이터가 제공되지 않았습니다.", pet_id=pet_id)

        try:
            self.pets_ref.document(pet_id).update(DateTimeUtils.for_firestore(changes))
        except gcp_exceptions.NotFound as e:
            raise PetNotFoundError(pet_id=pet_id) from e
        logging.info(f"Pet details updated for {pet_id} with fields: {list(changes.keys())}")

        updated = self.find_by_id(pet_id)
        if updated is None:
            raise PetNotFoundError(pet_id=pet_id)
        return updated

    def conditional_update_status(self, pet_id: str, expected: Iterable[PetStatus], next_status: PetStatus,
                                  extra_fields: Optional[Dict[str, Any]] = None) -> Pet:
        """
        현재 상태가 expected 중 하나일 때만 next_status로 바꾸고, 변경 전 Pet을 반환합니다.

        :raises PetNotFoundError: 펫이 없는 경우
        :raises StatusConflictError: 상태 불일치 또는 동시 수정
        """
        try:
            previous = compare_and_set(
                self.db, self.pets_ref.document(pet_id), 'status', expected, next_status,
                DateTimeUtils.for_firestore(extra_fields or {})
            )
        except NotFoundError as e:
            raise PetNotFoundError(pet_id=pet_id) from e
        logging.info(f"Pet {pet_id} status: {previous.get('status')} -> {next_status.value}")
        return Pet.from_dict(previous)

    def set_status(self, pet_id: str, next_status: PetStatus, extra_fields: Optional[Dict[str, Any]] = None) -> None:
        """현재 상태와 관계없이 상태를 씁니다. 존재하지 않는 펫이면 PetNotFoundError."""
        payload = {'status': next_status.value}
        payload.update(DateTimeUtils.for_firestore(extra_fields or {}))
        try:
            self.pets_ref.document(pet_id).update(payload)
        except gcp_exceptions.NotFound as e:
            raise PetNotFoundError(pet_id=pet_id) from e
        logging.info(f"Pet {pet_id} status set to {next_status.value}")

    def delete(self, pet_id: str, allowed_statuses: Iterable[PetStatus]) -> None:
        try:
            delete_if(self.db, self.pets_ref.document(pet_id), 'status', allowed_statuses)
        except NotFoundError as e:
            raise PetNotFoundError(pet_id=pet_id) from e
        logging.info(f"Pet {pet_id} deleted")
