# app/api/applications/routes.py
import logging
from dataclasses import asdict
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.core.security import current_principal
from .schemas import ApplicationCreateSchema, DecisionSchema, ApplicationResponseSchema

applications_bp = Blueprint('applications_bp', __name__)


def _application_to_dict(application) -> dict:
    app_dict = asdict(application)
    app_dict['status'] = application.status.value
    app_dict['processing_days'] = application.processing_days
    return app_dict


@applications_bp.route('/', methods=['POST'])
@jwt_required()
def submit_application():
    """입양 신청 API. 같은 반려동물에 대한 중복 신청은 409."""
    principal = current_principal()
    workflow = current_app.services['adoptions']
    data = ApplicationCreateSchema().load(request.get_json(silent=True) or {})
    application = workflow.submit_application(principal, data['pet_id'], data.get('user_message'))
    return jsonify(ApplicationResponseSchema().dump(_application_to_dict(application))), 201


@applications_bp.route('/my', methods=['GET'])
@jwt_required()
def list_my_applications():
    """내 입양 신청 목록 (최신순)."""
    principal = current_principal()
    applications = current_app.services['adoptions'].list_my_applications(principal)
    return jsonify(ApplicationResponseSchema(many=True).dump(applications)), 200


@applications_bp.route('/', methods=['GET'])
@jwt_required()
def list_all_applications():
    """[관리자 전용] 전체 입양 신청 목록. ?pet_id= 로 특정 반려동물만 조회할 수 있습니다."""
    principal = current_principal()
    pet_id = request.args.get('pet_id', None, type=str)
    applications = current_app.services['adoptions'].list_all_applications(principal, pet_id=pet_id)
    return jsonify(ApplicationResponseSchema(many=True).dump(applications)), 200


@applications_bp.route('/<string:application_id>', methods=['GET'])
@jwt_required()
def get_application(application_id: str):
    principal = current_principal()
    application = current_app.services['adoptions'].get_application(principal, application_id)
    return jsonify(ApplicationResponseSchema().dump(_application_to_dict(application))), 200


@applications_bp.route('/<string:application_id>/approve', methods=['PUT'])
@jwt_required()
def approve_application(application_id: str):
    """[관리자 전용] 입양 승인. 다른 신청으로 이미 입양된 경우 409 ADOPTION_CONFLICT."""
    principal = current_principal()
    data = DecisionSchema().load(request.get_json(silent=True) or {})
    application = current_app.services['adoptions'].approve_application(principal, application_id, data.get('admin_notes'))
    return jsonify(ApplicationResponseSchema().dump(_application_to_dict(application))), 200


@applications_bp.route('/<string:application_id>/reject', methods=['PUT'])
@jwt_required()
def reject_application(application_id: str):
    """[관리자 전용] 입양 거절."""
    principal = current_principal()
    data = DecisionSchema().load(request.get_json(silent=True) or {})
    application = current_app.services['adoptions'].reject_application(principal, application_id, data.get('admin_notes'))
    return jsonify(ApplicationResponseSchema().dump(_application_to_dict(application))), 200


@applications_bp.route('/<string:application_id>', methods=['DELETE'])
@jwt_required()
def withdraw_application(application_id: str):
    """[소유자 전용] 입양 신청 철회."""
    principal = current_principal()
    current_app.services['adoptions'].withdraw_application(principal, application_id)
    logging.info(f"Withdraw API completed (application_id: {application_id})")
    return jsonify({"message": "입양 신청이 철회되었습니다.", "application_id": application_id}), 200
