# app/models/user.py
from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """
    인증이 끝난 호출자. 토큰에서 한 번 만들어져 각 워크플로우 연산의 인자로 그대로 전달됩니다.
    전역 세션 상태에 기대지 않기 때문에 서비스 로직을 Flask 없이도 테스트할 수 있습니다.
    """
    user_id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
