# conftest.py
"""
공용 pytest 픽스처.

Firestore는 메모리 기반 가짜 클라이언트로 대체합니다. 워크플로우가 기대는 단일 문서 규칙만 재현합니다.
- create(): 문서가 있으면 AlreadyExists
- update(): 문서가 없으면 NotFound, write_option(last_update_time)이 어긋나면 FailedPrecondition
- delete(option=...): 전제 조건이 어긋나면 FailedPrecondition
예외는 실제 google.api_core.exceptions를 그대로 올립니다.
"""
import copy
import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token
from google.api_core import exceptions as gcp_exceptions

from app import create_app
from app.api.applications.services import AdoptionWorkflowService
from app.api.pets.services import PetService
from app.models.user import Principal, Role
from app.services.application_ledger import ApplicationLedger
from app.services.pet_registry import PetRegistry

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeWriteOption:
    def __init__(self, last_update_time):
        self.last_update_time = last_update_time


class FakeSnapshot:
    def __init__(self, doc_id, data, update_time):
        self.id = doc_id
        self._data = data
        self.update_time = update_time
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


class FakeDocumentReference:
    def __init__(self, client, collection_name, doc_id):
        self._client = client
        self._collection = collection_name
        self.id = doc_id

    @property
    def _docs(self):
        return self._client.store.setdefault(self._collection, {})

    def get(self, transaction=None):
        with self._client.lock:
            self._client.before_read(self)
            data, update_time = self._docs.get(self.id, (None, None))
            return FakeSnapshot(self.id, copy.deepcopy(data), update_time)

    def create(self, data):
        with self._client.lock:
            if self.id in self._docs:
                raise gcp_exceptions.AlreadyExists(f"Document already exists: {self._collection}/{self.id}")
            self._docs[self.id] = (copy.deepcopy(data), self._client.tick())

    def set(self, data, merge=False):
        with self._client.lock:
            current = self._docs.get(self.id, ({}, None))[0] if merge else {}
            current = {**current, **copy.deepcopy(data)}
            self._docs[self.id] = (current, self._client.tick())

    def update(self, field_updates, option=None):
        with self._client.lock:
            self._client.before_write(self)
            if self.id not in self._docs:
                raise gcp_exceptions.NotFound(f"No document to update: {self._collection}/{self.id}")
            data, update_time = self._docs[self.id]
            if option is not None and option.last_update_time != update_time:
                raise gcp_exceptions.FailedPrecondition("the stored version does not match the required base version")
            self._docs[self.id] = ({**data, **copy.deepcopy(field_updates)}, self._client.tick())

    def delete(self, option=None):
        with self._client.lock:
            self._client.before_write(self)
            if option is not None:
                stored = self._docs.get(self.id)
                if stored is None or stored[1] != option.last_update_time:
                    raise gcp_exceptions.FailedPrecondition("the stored version does not match the required base version")
            self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, client, collection_name, filters=(), limit_count=None):
        self._client = client
        self._collection = collection_name
        self._filters = tuple(filters)
        self._limit = limit_count

    def where(self, field_path, op_string, value):
        if op_string not in ('==', 'in'):
            raise NotImplementedError(op_string)
        return FakeQuery(self._client, self._collection, self._filters + ((field_path, op_string, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._client, self._collection, self._filters, count)

    def _matches(self, data):
        for field_path, op_string, value in self._filters:
            if op_string == '==' and data.get(field_path) != value:
                return False
            if op_string == 'in' and data.get(field_path) not in value:
                return False
        return True

    def stream(self):
        with self._client.lock:
            docs = self._client.store.setdefault(self._collection, {})
            results = [
                FakeSnapshot(doc_id, copy.deepcopy(data), update_time)
                for doc_id, (data, update_time) in docs.items()
                if self._matches(data)
            ]
        return iter(results[:self._limit] if self._limit else results)

    def get(self):
        return list(self.stream())


class FakeCollectionReference(FakeQuery):
    def __init__(self, client, collection_name):
        super().__init__(client, collection_name)

    def document(self, document_id=None):
        return FakeDocumentReference(self._client, self._collection, document_id or uuid.uuid4().hex)


class FakeFirestoreClient:
    """firebase_admin.firestore.client()가 돌려주는 객체 중 이 프로젝트가 쓰는 부분만 흉내 냅니다."""

    def __init__(self):
        self.store = {}
        self.lock = threading.RLock()
        self._ticks = 0
        # 테스트에서 끼워 넣는 훅: 읽기/쓰기 직전에 호출됩니다 (경쟁 상황 재현, 장애 주입용)
        self.read_hooks = []
        self.write_hooks = []

    def tick(self):
        self._ticks += 1
        return _EPOCH + timedelta(microseconds=self._ticks)

    def collection(self, name):
        return FakeCollectionReference(self, name)

    def write_option(self, last_update_time=None, **kwargs):
        return FakeWriteOption(last_update_time)

    def before_read(self, doc_ref):
        for hook in list(self.read_hooks):
            hook(doc_ref)

    def before_write(self, doc_ref):
        for hook in list(self.write_hooks):
            hook(doc_ref)


@pytest.fixture
def fake_db():
    return FakeFirestoreClient()


@pytest.fixture
def pet_registry(fake_db):
    return PetRegistry(db=fake_db)


@pytest.fixture
def application_ledger(fake_db):
    return ApplicationLedger(db=fake_db)


@pytest.fixture
def workflow(pet_registry, application_ledger):
    return AdoptionWorkflowService(pet_registry=pet_registry, application_ledger=application_ledger)


@pytest.fixture
def pet_service(pet_registry):
    return PetService(pet_registry=pet_registry)


@pytest.fixture
def admin():
    return Principal(user_id='admin-1', role=Role.ADMIN)


@pytest.fixture
def make_pet(pet_registry):
    """available 상태의 반려동물을 등록하는 팩토리."""
    def _make_pet(name='Bori', **overrides):
        pet_data = dict(
            name=name, species='dog', breed='Jindo', age='young',
            description='Friendly and calm.', temperament=['calm'],
        )
        pet_data.update(overrides)
        return pet_registry.create(pet_data)
    return _make_pet


@pytest.fixture
def app(fake_db):
    flask_app = create_app('testing', db=fake_db)
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Authorization 헤더 팩토리: auth_headers('user-a') / auth_headers('admin-1', role='admin')."""
    def _auth_headers(user_id, role='user'):
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims={app.config['ROLE_CLAIM']: role})
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers
