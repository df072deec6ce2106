import random

import pytest

from spark.logic.questions import QuestionCatalog
from spark.messaging.router import MessageRouter
from spark.server.app import create_app
from spark.server.settings import SparkServerSettings
from spark.session.registry import RoomRegistry
from spark.session.service import RoomActionService
from spark.tests.mocks import MockConnection


@pytest.fixture
def catalog():
    return QuestionCatalog.from_file()


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def service(registry, catalog):
    return RoomActionService(registry, catalog, rng=random.Random(7))


@pytest.fixture
def message_router(service):
    return MessageRouter(service)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return SparkServerSettings(max_rooms=10, cors_origins=["http://localhost:3000"])


@pytest.fixture
def app(server_settings, service, message_router):
    return create_app(settings=server_settings, service=service, message_router=message_router)
