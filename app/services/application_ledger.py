# app/services/application_ledger.py
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from firebase_admin import firestore

from app.core.errors import (
    ApplicationAlreadyDecidedError,
    ApplicationNotFoundError,
    DuplicateApplicationError,
    NotFoundError,
    StatusConflictError,
)
from app.models.application import Application, ApplicationStatus
from app.services.consistency import DuplicateKeyError, compare_and_set, create_unique, delete_if
from app.utils.datetime_utils import DateTimeUtils


class ApplicationLedger:
    """
    Firestore 'applications' 컬렉션 어댑터.
    문서 ID가 (user_id, pet_id)에서 결정되므로 insert_unique의 create()가 곧 유일성 제약입니다.
    """

    def __init__(self, db=None, collection_name: str = 'applications'):
        self.db = db or firestore.client()
        self.applications_ref = self.db.collection(collection_name)
        logging.info(f"ApplicationLedger initialized (collection: {collection_name})")

    def find_by_id(self, application_id: str) -> Optional[Application]:
        doc = self.applications_ref.document(application_id).get()
        if not doc.exists:
            return None
        return Application.from_dict(doc.to_dict())

    def insert_unique(self, user_id: str, pet_id: str, fields: Dict[str, Any]) -> Application:
        """
        Pending 상태의 신청서를 생성합니다.
        같은 (user_id, pet_id) 문서가 이미 있으면 상태와 무관하게 DuplicateApplicationError.
        """
        application = Application(
            application_id=Application.id_for(user_id, pet_id),
            user_id=user_id,
            pet_id=pet_id,
            user_message=fields.get('user_message'),
        )
        doc_ref = self.applications_ref.document(application.application_id)
        try:
            create_unique(doc_ref, DateTimeUtils.for_firestore(application.to_dict()))
        except DuplicateKeyError as e:
            logging.warning(f"Duplicate application rejected (user: {user_id}, pet: {pet_id})")
            raise DuplicateApplicationError(user_id=user_id, pet_id=pet_id) from e

        logging.info(f"Application {application.application_id} created (user: {user_id}, pet: {pet_id})")
        return application

    def update_decision(self, application_id: str, status: ApplicationStatus, notes: Optional[str],
                        decided_date: datetime) -> Application:
        """Pending 신청서에만 결정을 기록합니다. 이미 결정된 경우 ApplicationAlreadyDecidedError."""
        try:
            previous = compare_and_set(
                self.db, self.applications_ref.document(application_id), 'status',
                [ApplicationStatus.PENDING], status,
                DateTimeUtils.for_firestore({'admin_notes': notes, 'decided_date': decided_date})
            )
        except NotFoundError as e:
            raise ApplicationNotFoundError(application_id=application_id) from e
        except StatusConflictError as e:
            raise ApplicationAlreadyDecidedError(application_id=application_id, current_status=e.current_status) from e

        decided = Application.from_dict(previous)
        decided.status = status
        decided.admin_notes = notes
        decided.decided_date = decided_date
        logging.info(f"Application {application_id} decided: {status.value}")
        return decided

    def delete_by_id(self, application_id: str, allowed_statuses: Iterable[ApplicationStatus]) -> Application:
        """허용된 상태의 신청서만 삭제하고, 삭제된 신청서를 반환합니다."""
        try:
            previous = delete_if(self.db, self.applications_ref.document(application_id), 'status', allowed_statuses)
        except NotFoundError as e:
            raise ApplicationNotFoundError(application_id=application_id) from e
        except StatusConflictError as e:
            raise ApplicationAlreadyDecidedError(application_id=application_id, current_status=e.current_status) from e
        logging.info(f"Application {application_id} deleted")
        return Application.from_dict(previous)

    def exists_pending(self, pet_id: str, excluding_id: Optional[str] = None) -> bool:
        query = self.applications_ref.where('pet_id', '==', pet_id).where('status', '==', ApplicationStatus.PENDING.value)
        return any(doc.id != excluding_id for doc in query.stream())

    def list_by_user(self, user_id: str) -> List[Application]:
        return self._sorted(self.applications_ref.where('user_id', '==', user_id).stream())

    def list_by_pet(self, pet_id: str) -> List[Application]:
        return self._sorted(self.applications_ref.where('pet_id', '==', pet_id).stream())

    def list_all(self) -> List[Application]:
        return self._sorted(self.applications_ref.stream())

    @staticmethod
    def _sorted(docs) -> List[Application]:
        """최신 신청 순. where + order_by 복합 인덱스를 만들지 않기 위해 메모리에서 정렬합니다."""
        applications = [Application.from_dict(doc.to_dict()) for doc in docs]
        applications.sort(key=lambda a: a.applied_date, reverse=True)
        return applications
