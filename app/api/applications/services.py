# app/api/applications/services.py
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from app.core.errors import (
    AdoptionConflictError,
    ApplicationAlreadyDecidedError,
    ApplicationNotFoundError,
    ForbiddenError,
    InternalInconsistencyError,
    PetNotFoundError,
    StatusConflictError,
)
from app.core.security import require_admin
from app.models.application import Application, ApplicationStatus
from app.models.pet import ADOPTABLE_STATUSES, PetStatus
from app.models.user import Principal
from app.services.application_ledger import ApplicationLedger
from app.services.pet_registry import PetRegistry
from app.utils.datetime_utils import DateTimeUtils

# 거절 시 펫 되돌리기 compare-and-set 시도 횟수
RELEASE_ATTEMPTS = 2


class AdoptionWorkflowService:
    """
    입양 신청(submit) / 승인(approve) / 거절(reject) / 철회(withdraw)를 조율하는 서비스.

    펫 문서와 신청서 문서는 각각 단일 문서 단위로만 원자적으로 기록됩니다.
    - 중복 신청은 Ledger의 create()가, 동시 승인은 Registry의 compare-and-set이 막습니다.
    - 첫 번째 쓰기가 반영된 뒤 두 번째 쓰기가 실패하면 INTERNAL_INCONSISTENCY 로그를 남기고
      InternalInconsistencyError를 올립니다. 자동 복구는 하지 않습니다(승인 보상 쓰기 제외).
    """

    def __init__(self, pet_registry: PetRegistry, application_ledger: ApplicationLedger):
        self.pet_registry = pet_registry
        self.application_ledger = application_ledger
        logging.info("AdoptionWorkflowService initialized with dependencies.")

    # --- 조회 ---
    def get_application(self, principal: Principal, application_id: str) -> Application:
        """[소유자 또는 관리자] 신청서 한 건을 조회합니다."""
        application = self._get_application_or_raise(application_id)
        if application.user_id != principal.user_id and not principal.is_admin:
            raise ForbiddenError("이 입양 신청서를 조회할 권한이 없습니다.")
        return application

    def list_my_applications(self, principal: Principal) -> List[Dict[str, Any]]:
        applications = self.application_ledger.list_by_user(principal.user_id)
        return self._with_pet_names(applications)

    def list_all_applications(self, principal: Principal, pet_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """[관리자 전용] 전체 또는 특정 펫의 신청서 목록."""
        require_admin(principal)
        if pet_id:
            applications = self.application_ledger.list_by_pet(pet_id)
        else:
            applications = self.application_ledger.list_all()
        return self._with_pet_names(applications)

    # --- 신청 ---
    def submit_application(self, principal: Principal, pet_id: str, user_message: Optional[str] = None) -> Application:
        """
        입양 신청서를 만들고 펫을 available -> pending으로 옮깁니다.
        이미 pending이면 그대로 둡니다.
        """
        if self.pet_registry.find_by_id(pet_id) is None:
            raise PetNotFoundError(pet_id=pet_id)

        application = self.application_ledger.insert_unique(
            principal.user_id, pet_id, {'user_message': user_message}
        )
        self._mark_pet_pending(application)
        return application

    # --- 결정 ---
    def approve_application(self, principal: Principal, application_id: str,
                            admin_notes: Optional[str] = None) -> Application:
        """
        [관리자 전용] 신청서를 승인하고 펫을 adopted로 확정합니다.

        펫의 compare-and-set이 먼저 확정된 뒤에만 신청서에 Approved를 기록합니다.
        compare-and-set에서 지면 신청서는 Pending으로 남고 AdoptionConflictError가 올라갑니다.
        신청서 기록이 실패하면 펫을 직전 상태로 되돌립니다.
        """
        require_admin(principal)
        application = self._get_pending_application_or_raise(application_id)
        decided_at = DateTimeUtils.now()

        try:
            previous_pet = self.pet_registry.conditional_update_status(
                application.pet_id,
                expected=ADOPTABLE_STATUSES,
                next_status=PetStatus.ADOPTED,
                extra_fields={'adopted_by': application.user_id, 'adoption_date': decided_at},
            )
        except StatusConflictError as e:
            logging.warning(
                f"Approval of {application_id} lost the adoption race for pet {application.pet_id} "
                f"(observed status: {e.current_status})"
            )
            raise AdoptionConflictError(application_id=application_id, pet_id=application.pet_id) from e

        try:
            approved = self.application_ledger.update_decision(
                application_id, ApplicationStatus.APPROVED, admin_notes, decided_at
            )
        except Exception as decision_error:
            self._compensate_adoption(application, previous_pet.status, decision_error)
            raise

        logging.info(f"Application {application_id} approved by {principal.user_id}; pet {application.pet_id} adopted by {application.user_id}")
        return approved

    def reject_application(self, principal: Principal, application_id: str,
                           admin_notes: Optional[str] = None) -> Application:
        """
        [관리자 전용] 신청서를 거절하고 펫을 available로 되돌립니다.

        같은 펫에 남아 있는 다른 Pending 신청은 확인하지 않습니다(철회와 다른 동작).
        단, 이미 adopted인 펫은 되돌리지 않습니다.
        """
        require_admin(principal)
        application = self._get_pending_application_or_raise(application_id)

        rejected = self.application_ledger.update_decision(
            application_id, ApplicationStatus.REJECTED, admin_notes, DateTimeUtils.now()
        )

        try:
            self._release_pet(application)
        except StatusConflictError as e:
            raise self._inconsistency(
                'reject', application, committed='application Rejected', failed='pet -> available', cause=e
            ) from e
        except PetNotFoundError:
            logging.warning(f"Pet {application.pet_id} no longer exists; nothing to revert for {application_id}")
        except Exception as e:
            raise self._inconsistency(
                'reject', application, committed='application Rejected', failed='pet -> available', cause=e
            ) from e

        logging.info(f"Application {application_id} rejected by {principal.user_id}")
        return rejected

    # --- 철회 ---
    def withdraw_application(self, principal: Principal, application_id: str) -> Application:
        """
        [소유자 전용] 신청서를 삭제합니다. 같은 펫에 Pending 신청이 더 없으면 펫을 available로 되돌립니다.
        Approved 신청서는 철회할 수 없습니다.
        """
        application = self._get_application_or_raise(application_id)
        if application.user_id != principal.user_id:
            logging.warning(f"User {principal.user_id} tried to withdraw application {application_id} owned by {application.user_id}")
            raise ForbiddenError("본인의 입양 신청서만 철회할 수 있습니다.")
        if application.status is ApplicationStatus.APPROVED:
            raise ApplicationAlreadyDecidedError("승인된 입양 신청서는 철회할 수 없습니다.", application_id=application_id)

        withdrawn = self.application_ledger.delete_by_id(
            application_id, allowed_statuses=[ApplicationStatus.PENDING, ApplicationStatus.REJECTED]
        )
        logging.info(f"Application {application_id} withdrawn by {principal.user_id}")

        if self.application_ledger.exists_pending(application.pet_id, excluding_id=application_id):
            logging.info(f"Pet {application.pet_id} still has pending applications; status unchanged")
            return withdrawn

        try:
            self.pet_registry.conditional_update_status(
                application.pet_id, expected=[PetStatus.PENDING], next_status=PetStatus.AVAILABLE
            )
        except StatusConflictError as e:
            logging.info(f"Pet {application.pet_id} is not pending (observed: {e.current_status}); no revert needed")
            return withdrawn
        except PetNotFoundError:
            logging.warning(f"Pet {application.pet_id} no longer exists; nothing to revert for {application_id}")
            return withdrawn
        except Exception as e:
            raise self._inconsistency(
                'withdraw', application, committed='application deleted', failed='pet -> available', cause=e
            ) from e

        # 확인과 되돌리기 사이에 들어온 신청이 있으면 pending을 복원
        if self.application_ledger.exists_pending(application.pet_id, excluding_id=application_id):
            self._mark_pet_pending(application)
        return withdrawn

    # --- 내부 도우미 ---
    def _get_application_or_raise(self, application_id: str) -> Application:
        application = self.application_ledger.find_by_id(application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id=application_id)
        return application

    def _get_pending_application_or_raise(self, application_id: str) -> Application:
        application = self._get_application_or_raise(application_id)
        if application.is_decided:
            raise ApplicationAlreadyDecidedError(application_id=application_id, current_status=application.status.value)
        return application

    def _pet_has_status(self, pet_id: str, status: PetStatus) -> bool:
        pet = self.pet_registry.find_by_id(pet_id)
        return pet is not None and pet.status is status

    def _release_pet(self, application: Application) -> None:
        """
        거절된 신청의 펫을 available로 되돌립니다. adopted 펫은 그대로 둡니다.

        다른 거절/철회와 경쟁해 compare-and-set에서 지면 새로 읽어서 한 번 더 시도합니다.
        그래도 지면 펫을 다시 읽어 available 또는 adopted면 정상으로 보고,
        그 밖의 상태로 남아 있을 때만 StatusConflictError를 올립니다.
        """
        for attempt in range(1, RELEASE_ATTEMPTS + 1):
            try:
                self.pet_registry.conditional_update_status(
                    application.pet_id, expected=ADOPTABLE_STATUSES, next_status=PetStatus.AVAILABLE
                )
                return
            except StatusConflictError as e:
                if e.current_status is not None:
                    # 값 비교에서 진 경우: ADOPTABLE_STATUSES 밖의 값은 adopted뿐
                    logging.info(f"Pet {application.pet_id} already adopted; rejection of {application.application_id} leaves it unchanged")
                    return
                logging.info(f"Pet revert for rejection of {application.application_id} lost a race (attempt {attempt})")
                last_conflict = e

        pet = self.pet_registry.find_by_id(application.pet_id)
        if pet is None or pet.status in (PetStatus.AVAILABLE, PetStatus.ADOPTED):
            logging.info(f"Pet {application.pet_id} settled as {pet.status.value if pet else 'deleted'} by a concurrent write")
            return
        raise StatusConflictError(current_status=pet.status.value, pet_id=application.pet_id) from last_conflict

    def _mark_pet_pending(self, application: Application) -> None:
        """신청이 존재하는 펫을 available -> pending으로 옮깁니다. 펫이 available로 남으면 불일치입니다."""
        try:
            self.pet_registry.conditional_update_status(
                application.pet_id, expected=[PetStatus.AVAILABLE], next_status=PetStatus.PENDING
            )
        except StatusConflictError as e:
            if e.current_status is not None or not self._pet_has_status(application.pet_id, PetStatus.AVAILABLE):
                return
            raise self._inconsistency(
                'submit', application, committed='application Pending', failed='pet -> pending', cause=e
            ) from e
        except Exception as e:
            raise self._inconsistency(
                'submit', application, committed='application Pending', failed='pet -> pending', cause=e
            ) from e

    def _compensate_adoption(self, application: Application, previous_status: PetStatus, cause: Exception) -> None:
        """승인 기록 실패 시 펫의 adopted 쓰기를 되돌립니다. 되돌리기마저 실패하면 불일치로 보고합니다."""
        logging.warning(
            f"Approval write failed for {application.application_id} after pet {application.pet_id} was adopted; "
            f"restoring pet to {previous_status.value} ({cause})"
        )
        try:
            self.pet_registry.set_status(
                application.pet_id, previous_status, {'adopted_by': None, 'adoption_date': None}
            )
        except Exception as e:
            raise self._inconsistency(
                'approve', application, committed='pet adopted', failed='application Approved and pet restore', cause=e
            ) from e

    @staticmethod
    def _inconsistency(operation: str, application: Application, committed: str, failed: str,
                       cause: Exception) -> InternalInconsistencyError:
        logging.error(
            f"INTERNAL_INCONSISTENCY operation={operation} application={application.application_id} "
            f"pet={application.pet_id} user={application.user_id} committed='{committed}' failed='{failed}' "
            f"cause={cause!r}"
        )
        return InternalInconsistencyError(
            operation=operation,
            application_id=application.application_id,
            pet_id=application.pet_id,
            user_id=application.user_id,
            committed=committed,
            failed=failed,
        )

    def _with_pet_names(self, applications: List[Application]) -> List[Dict[str, Any]]:
        pet_names: Dict[str, Optional[str]] = {}
        results = []
        for application in applications:
            if application.pet_id not in pet_names:
                pet = self.pet_registry.find_by_id(application.pet_id)
                pet_names[application.pet_id] = pet.name if pet else None
            app_dict = asdict(application)
            app_dict['status'] = application.status.value
            app_dict['pet_name'] = pet_names[application.pet_id]
            app_dict['processing_days'] = application.processing_days
            results.append(app_dict)
        return results
