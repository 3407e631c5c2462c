import pytest

from bank import reset_bank


@pytest.fixture(autouse=True)
def fresh_bank():
    reset_bank()
    yield
    reset_bank()


class FakeAIClient:
    """Stands in for GeminiClient: returns canned JSON or raises."""

    def __init__(self, payload=None, text="", error=None):
        self.payload = payload
        self.text = text
        self.error = error
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.text

    def generate_json(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.payload


@pytest.fixture
def fake_ai():
    return FakeAIClient
