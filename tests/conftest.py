import pytest

from fakes import FakeApi, question
from stackit.identity import Identity


@pytest.fixture
def api() -> FakeApi:
    return FakeApi({"7": question(7), "8": question(8, title="Second question")})


@pytest.fixture
def alice() -> Identity:
    return Identity(credential="alice-token")


@pytest.fixture
def anonymous() -> Identity:
    return Identity()
