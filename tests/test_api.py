"""
Tests for the FastAPI endpoints.
"""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from app.main import app, resize_debouncer
from app.preferences import InMemoryPreferenceStore
from app.session import CalculatorSession


@pytest.fixture
def calculator():
    """Fresh calculator session used by the app."""
    return CalculatorSession(capacity=5, preferences=InMemoryPreferenceStore())


@pytest.fixture
def client(calculator):
    """Create a test client bound to the fresh session."""
    with patch('app.main.get_session', return_value=calculator):
        yield TestClient(app)
        resize_debouncer.cancel()


def press(client, *keys):
    """Send each key to its endpoint and return the last response."""
    response = None
    for key in keys:
        if key == "=":
            response = client.post("/equals")
        elif key in ("+", "-", "×", "÷"):
            response = client.post("/operator", json={"operator": key})
        else:
            response = client.post("/digit", json={"digit": key})
        assert response.status_code == 200
    return response


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_check(self, client):
        """Test health check on a fresh session."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["capacity"] == 5
        assert data["history_rows"] == 5


class TestStateEndpoint:
    """Tests for /state endpoint."""

    def test_initial_state(self, client):
        """Test the display before any key is pressed."""
        response = client.get("/state")

        assert response.status_code == 200
        data = response.json()
        assert data["display_input"] == "0"
        assert data["display_operator"] == ""
        assert data["show_tooltip_hint"] is True
        assert len(data["history"]) == 5
        assert all(row["style"] == "blank" for row in data["history"])


class TestActionEndpoints:
    """Tests for the key endpoints."""

    def test_simple_equation(self, client):
        """Test 5 + 3 = over HTTP."""
        data = press(client, "5", "+", "3", "=").json()

        assert data["display_input"] == "8"
        assert data["display_operator"] == "="
        tail = [(r["operator_symbol"], r["text"], r["style"]) for r in data["history"][-3:]]
        assert tail == [
            ("+", "3", "normal"),
            ("=", "8", "resultHighlight"),
            ("", "", "blank"),
        ]

    def test_toggle_sign(self, client):
        """Test the sign key."""
        press(client, "4", "2")

        response = client.post("/sign")

        assert response.status_code == 200
        assert response.json()["display_input"] == "-42"

    def test_invalid_digit(self, client):
        """Test that an unknown key is rejected."""
        response = client.post("/digit", json={"digit": "12"})

        assert response.status_code == 422

    def test_invalid_operator(self, client):
        """Test that ASCII "*" is not one of the operator keys."""
        response = client.post("/operator", json={"operator": "*"})

        assert response.status_code == 422

    def test_all_clear(self, client):
        """Test that AC empties the tape."""
        press(client, "5", "+", "3", "=")

        response = client.post("/all-clear")

        data = response.json()
        assert data["display_input"] == "0"
        assert [r["text"] for r in data["history"]] == [" "] * 5

    def test_action_failure(self, client, calculator):
        """Test that an unexpected error becomes a 500."""
        with patch.object(calculator, 'add_digit', side_effect=RuntimeError("boom")):
            response = client.post("/digit", json={"digit": "1"})

        assert response.status_code == 500
        assert "boom" in response.json()["detail"]


class TestClearEndpoint:
    """Tests for /clear endpoint."""

    def test_tooltip_shown_once(self, client):
        """Test that the AC hint comes with the first C only."""
        press(client, "7")

        first = client.post("/clear").json()
        second = client.post("/clear").json()

        assert first["tooltip"] == "Long press for AC"
        assert first["display_input"] == "0"
        assert first["show_tooltip_hint"] is False
        assert second["tooltip"] is None

    def test_dismiss_tooltip(self, client):
        """Test turning the hint off directly."""
        response = client.post("/tooltip/dismiss")

        assert response.status_code == 200
        assert response.json()["show_tooltip_hint"] is False
        assert client.post("/clear").json()["tooltip"] is None


class TestResizeEndpoint:
    """Tests for /resize endpoint."""

    def test_resize_applies_after_settling(self, client):
        """Test that the last reported height is applied."""
        client.post("/resize", json={"height": 120})
        response = client.post("/resize", json={"height": 200})

        data = response.json()
        assert data["pending"] is True
        assert data["requested_rows"] == 6

        resize_debouncer.flush()

        state = client.get("/state").json()
        assert state["capacity"] == 6
        assert len(state["history"]) == 6

    def test_resize_out_of_range(self, client):
        """Test that a negative height is rejected."""
        response = client.post("/resize", json={"height": -1})

        assert response.status_code == 422
