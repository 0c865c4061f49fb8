# app/core/config.py

import os
from datetime import timedelta


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 역할(role) 클레임의 위변조를 막는 유일한 수단이므로 반드시 설정해야 합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_HOURS', 1)))
    # 토큰 안에서 사용자 역할(user/admin)을 담는 클레임 이름
    ROLE_CLAIM = os.getenv('ROLE_CLAIM', 'role')

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    PETS_COLLECTION = os.getenv('PETS_COLLECTION', 'pets')
    APPLICATIONS_COLLECTION = os.getenv('APPLICATIONS_COLLECTION', 'applications')


class DevelopmentConfig(Config):
    """개발 환경 설정. 개발용 Firebase 프로젝트의 서비스 계정 키를 사용합니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경 설정."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-for-adoption-workflow')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    DEBUG = False


# FLASK_ENV 값으로 설정 클래스를 고르는 매핑 (app/__init__.py의 create_app에서 사용)
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
