# app/api/applications/schemas.py
from marshmallow import Schema, fields, validate, pre_load, ValidationError

from app.models.application import WORKFLOW_FIELDS


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class ApplicationCreateSchema(Schema):
    """POST /api/applications 입양 신청 요청 스키마."""
    pet_id = fields.Str(required=True, validate=validate.Length(min=1), error_messages={"required": "신청할 반려동물 ID(pet_id)는 필수입니다."})
    user_message = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=1000, error="메시지는 1000자를 넘을 수 없습니다."))

    @pre_load
    def reject_workflow_fields(self, data, **kwargs):
        """status, decided_date 등은 워크플로우만 기록합니다."""
        if isinstance(data, dict):
            protected = sorted((WORKFLOW_FIELDS - {'pet_id'}) & set(data))
            if protected:
                raise ValidationError({name: ["워크플로우가 관리하는 필드는 직접 지정할 수 없습니다."] for name in protected})
            if 'user_message' in data:
                data = {**data, 'user_message': _strip(data['user_message'])}
        return data


class DecisionSchema(Schema):
    """PUT /api/applications/<id>/approve|reject 요청 스키마."""
    admin_notes = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=1000, error="관리자 메모는 1000자를 넘을 수 없습니다."))

    @pre_load
    def strip_notes(self, data, **kwargs):
        if isinstance(data, dict) and 'admin_notes' in data:
            data = {**data, 'admin_notes': _strip(data['admin_notes'])}
        return data


class ApplicationResponseSchema(Schema):
    """입양 신청서 응답 스키마."""
    application_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    pet_id = fields.Str(required=True)
    pet_name = fields.Str(allow_none=True)
    status = fields.Method("get_status")
    user_message = fields.Str(allow_none=True)
    admin_notes = fields.Str(allow_none=True)
    applied_date = fields.DateTime(required=True)
    decided_date = fields.DateTime(allow_none=True)
    processing_days = fields.Int(allow_none=True)

    def get_status(self, obj):
        status = obj.get('status') if isinstance(obj, dict) else obj.status
        return getattr(status, 'value', status)
