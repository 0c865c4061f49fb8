# app/api/pets/schemas.py
from marshmallow import Schema, fields, validate, pre_load, ValidationError

from app.models.pet import (
    ADMIN_MANAGED_STATUSES, AGE_CATEGORIES, GENDERS, HEALTH_STATUSES, SIZES, SPECIES, TEMPERAMENTS, WORKFLOW_FIELDS
)

TRIMMED_FIELDS = ('name', 'breed', 'description')


class _DescriptivePetSchema(Schema):
    """등록/수정 공통 전처리: 문자열 공백 제거, 워크플로우 필드 차단."""

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        protected = sorted(WORKFLOW_FIELDS & set(data))
        if protected:
            raise ValidationError({name: ["입양 상태 관련 필드는 이 경로로 수정할 수 없습니다."] for name in protected})
        data = dict(data)
        for key in TRIMMED_FIELDS:
            if isinstance(data.get(key), str):
                data[key] = data[key].strip()
        if isinstance(data.get('temperament'), str):
            data['temperament'] = [data['temperament']]
        return data


class PetCreateSchema(_DescriptivePetSchema):
    """POST /api/pets 반려동물 등록 요청 스키마 (관리자)."""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    species = fields.Str(required=True, validate=validate.OneOf(SPECIES))
    breed = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    age = fields.Str(required=True, validate=validate.OneOf(AGE_CATEGORIES))
    description = fields.Str(required=True, validate=validate.Length(min=1, max=1000))
    size = fields.Str(load_default='medium', validate=validate.OneOf(SIZES))
    gender = fields.Str(load_default='unknown', validate=validate.OneOf(GENDERS))
    health_status = fields.Str(load_default='good', validate=validate.OneOf(HEALTH_STATUSES))
    temperament = fields.List(fields.Str(validate=validate.OneOf(TEMPERAMENTS)), load_default=list)
    is_featured = fields.Bool(load_default=False)


class PetUpdateSchema(_DescriptivePetSchema):
    """PATCH /api/pets/<pet_id> 설명 정보 부분 수정 스키마."""
    name = fields.Str(validate=validate.Length(min=1, max=50))
    species = fields.Str(validate=validate.OneOf(SPECIES))
    breed = fields.Str(validate=validate.Length(min=1, max=50))
    age = fields.Str(validate=validate.OneOf(AGE_CATEGORIES))
    description = fields.Str(validate=validate.Length(min=1, max=1000))
    size = fields.Str(validate=validate.OneOf(SIZES))
    gender = fields.Str(validate=validate.OneOf(GENDERS))
    health_status = fields.Str(validate=validate.OneOf(HEALTH_STATUSES))
    temperament = fields.List(fields.Str(validate=validate.OneOf(TEMPERAMENTS)))
    is_featured = fields.Bool()


class PetAvailabilitySchema(Schema):
    """PUT /api/pets/<pet_id>/availability 요청 스키마. pending/adopted는 워크플로우 전용입니다."""
    status = fields.Str(required=True, validate=validate.OneOf(sorted(s.value for s in ADMIN_MANAGED_STATUSES)))


class PetResponseSchema(Schema):
    pet_id = fields.Str(dump_only=True)
    name = fields.Str()
    species = fields.Str()
    breed = fields.Str()
    age = fields.Str()
    size = fields.Str()
    gender = fields.Str()
    health_status = fields.Str()
    temperament = fields.List(fields.Str())
    description = fields.Str()
    is_featured = fields.Bool()
    status = fields.Str()
    adopted_by = fields.Str(allow_none=True)
    adoption_date = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()
