from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from ordering.menu_service.main import app as menu_app
from ordering.services.menu_client import MenuClient, get_menu_client


class TestMenuClient:

    @patch("ordering.services.menu_client.requests.get")
    def test_fetch_menu_item(self, mock_get):
        response = MagicMock()
        response.json.return_value = {"id": "pad-thai", "restaurant_id": "bangkok"}
        mock_get.return_value = response

        item = MenuClient(base_url="http://menu:8000/").fetch_menu_item("pad-thai")

        assert item["restaurant_id"] == "bangkok"
        mock_get.assert_called_once_with("http://menu:8000/menu-items/pad-thai", timeout=2)

    @patch("ordering.services.menu_client.requests.get")
    def test_transient_errors_are_retried(self, mock_get):
        response = MagicMock()
        response.json.return_value = {"id": "margherita", "restaurant_id": "napoli"}
        mock_get.side_effect = [requests.ConnectionError("reset"), response]

        item = MenuClient(base_url="http://menu:8000").fetch_menu_item("margherita")

        assert item["restaurant_id"] == "napoli"
        assert mock_get.call_count == 2

    @patch("ordering.services.menu_client.requests.get")
    def test_gives_up_after_three_attempts(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("reset")

        with pytest.raises(requests.ConnectionError):
            MenuClient(base_url="http://menu:8000").fetch_menu_item("margherita")

        assert mock_get.call_count == 3

    def test_no_client_without_url(self):
        assert get_menu_client() is None


class TestMenuServiceMock:

    def test_known_item(self):
        client = TestClient(menu_app)

        resp = client.get("/menu-items/calzone")

        assert resp.status_code == 200
        assert resp.json()["restaurant_id"] == "napoli"

    def test_unknown_item(self):
        assert TestClient(menu_app).get("/menu-items/sushi").status_code == 404
