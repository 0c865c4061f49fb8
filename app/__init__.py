# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정 / 도메인 예외
from app.core.config import config_by_name
from app.core.errors import AdoptionError

# - API 블루프린트
from app.api.pets.routes import pets_bp
from app.api.applications.routes import applications_bp

# - 서비스 모듈
from app.services.pet_registry import PetRegistry
from app.services.application_ledger import ApplicationLedger
from app.api.pets.services import PetService
from app.api.applications.services import AdoptionWorkflowService


def create_app(config_name=None, db=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production'. 생략 시 FLASK_ENV를 따릅니다.
    :param db: Firestore 클라이언트. 주어지면 firebase_admin 초기화를 건너뜁니다(테스트용).
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    jwt = JWTManager(app)

    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 저장소 어댑터
    app.services['pet_registry'] = PetRegistry(db=db, collection_name=app.config['PETS_COLLECTION'])
    app.services['application_ledger'] = ApplicationLedger(db=db, collection_name=app.config['APPLICATIONS_COLLECTION'])

    # 5-2. 도메인 서비스
    app.services['pets'] = PetService(pet_registry=app.services['pet_registry'])
    app.services['adoptions'] = AdoptionWorkflowService(
        pet_registry=app.services['pet_registry'],
        application_ledger=app.services['application_ledger']
    )
    logging.info("Adoption workflow services initialized successfully")

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(applications_bp, url_prefix='/api/applications')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @jwt.unauthorized_loader
    def handle_missing_token(reason):
        return jsonify({"error_code": "UNAUTHORIZED", "message": reason}), 401

    @jwt.invalid_token_loader
    def handle_invalid_token(reason):
        return jsonify({"error_code": "UNAUTHORIZED", "message": reason}), 401

    @jwt.expired_token_loader
    def handle_expired_token(jwt_header, jwt_payload):
        return jsonify({"error_code": "UNAUTHORIZED", "message": "토큰이 만료되었습니다."}), 401

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(AdoptionError)
    def handle_adoption_error(err):
        if err.http_status >= 500:
            # 상세 식별자는 서비스 계층에서 이미 기록했으므로 응답에는 싣지 않습니다
            logging.error(f"Adoption workflow failure surfaced to client: {err.error_code} {err.context}")
        return jsonify(err.to_response()), err.http_status

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        if isinstance(err, HTTPException):
            return jsonify({"error_code": err.name.upper().replace(' ', '_'), "message": err.description}), err.code
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
