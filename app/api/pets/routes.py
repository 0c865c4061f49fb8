# app/api/pets/routes.py
from dataclasses import asdict
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from app.core.security import current_principal
from app.models.pet import PetStatus
from .schemas import PetCreateSchema, PetUpdateSchema, PetAvailabilitySchema, PetResponseSchema

pets_bp = Blueprint('pets_bp', __name__)


def _pet_to_dict(pet) -> dict:
    pet_dict = asdict(pet)
    pet_dict['status'] = pet.status.value
    return pet_dict


@pets_bp.route('/', methods=['GET'])
def list_pets():
    """반려동물 목록. 기본은 available만, ?status=all 이면 전체."""
    pet_service = current_app.services['pets']
    status = request.args.get('status', None, type=str)
    species = request.args.get('species', None, type=str)
    pets = pet_service.list_pets(status=status, species=species)
    return jsonify(PetResponseSchema(many=True).dump([_pet_to_dict(p) for p in pets])), 200


@pets_bp.route('/featured', methods=['GET'])
def list_featured_pets():
    pets = current_app.services['pets'].list_featured()
    return jsonify(PetResponseSchema(many=True).dump([_pet_to_dict(p) for p in pets])), 200


@pets_bp.route('/<string:pet_id>', methods=['GET'])
def get_pet(pet_id: str):
    pet = current_app.services['pets'].get_pet(pet_id)
    return jsonify(PetResponseSchema().dump(_pet_to_dict(pet))), 200


@pets_bp.route('/', methods=['POST'])
@jwt_required()
def register_pet():
    """[관리자 전용] 반려동물 등록."""
    principal = current_principal()
    validated_data = PetCreateSchema().load(request.get_json(silent=True) or {})
    new_pet = current_app.services['pets'].register_pet(principal, validated_data)
    return jsonify(PetResponseSchema().dump(_pet_to_dict(new_pet))), 201


@pets_bp.route('/<string:pet_id>', methods=['PATCH'])
@jwt_required()
def update_pet(pet_id: str):
    """[관리자 전용] 설명 정보 부분 수정. status / adopted_by / adoption_date는 400."""
    principal = current_principal()
    update_data = PetUpdateSchema().load(request.get_json(silent=True) or {})
    updated_pet = current_app.services['pets'].update_pet_details(principal, pet_id, update_data)
    return jsonify(PetResponseSchema().dump(_pet_to_dict(updated_pet))), 200


@pets_bp.route('/<string:pet_id>/availability', methods=['PUT'])
@jwt_required()
def change_availability(pet_id: str):
    """[관리자 전용] available / not_available / fostered 전환."""
    principal = current_principal()
    data = PetAvailabilitySchema().load(request.get_json(silent=True) or {})
    pet = current_app.services['pets'].change_availability(principal, pet_id, PetStatus(data['status']))
    return jsonify(PetResponseSchema().dump(_pet_to_dict(pet))), 200


@pets_bp.route('/<string:pet_id>', methods=['DELETE'])
@jwt_required()
def delete_pet(pet_id: str):
    principal = current_principal()
    current_app.services['pets'].delete_pet(principal, pet_id)
    return jsonify({"message": "반려동물이 삭제되었습니다.", "pet_id": pet_id}), 200
