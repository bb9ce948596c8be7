from unittest import mock

import pytest
import requests

from storefront.domain.exceptions import NotFoundError, ValidationError
from storefront.services.product_client import ProductClient


def _response(status_code, body=None):
    resp = mock.Mock(status_code=status_code)
    resp.json.return_value = body
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


@pytest.fixture
def client():
    return ProductClient(base_url="http://products.test/")


def test_line_item_from_catalogue(client):
    body = {"id": "1", "name": "Cotton Kurta", "price": 1299, "original_price": 1799, "image": "/k.jpg"}

    with mock.patch("requests.get", return_value=_response(200, body)) as get:
        item = client.line_item("1", color="red")

    get.assert_called_once_with("http://products.test/products/1", timeout=2)
    assert item.product_id == "1"
    assert item.unit_price == 1299
    assert item.original_unit_price == 1799
    assert item.quantity == 1
    assert item.color == "red"
    assert item.size is None


def test_unknown_product_is_not_found_without_retry(client):
    with mock.patch("requests.get", return_value=_response(404)) as get:
        with pytest.raises(NotFoundError):
            client.fetch_product("404")

    assert get.call_count == 1


def test_connection_errors_are_retried(client):
    with mock.patch("requests.get", side_effect=requests.ConnectionError("refused")) as get:
        with pytest.raises(requests.ConnectionError):
            client.fetch_product("1")

    assert get.call_count == 3


@pytest.mark.parametrize("price", [199.99, "1299", None])
def test_non_whole_rupee_price_is_rejected(client, price):
    body = {"id": "1", "name": "Keyboard", "price": price}

    with mock.patch("requests.get", return_value=_response(200, body)):
        with pytest.raises(ValidationError):
            client.line_item("1")


def test_integral_float_price_is_accepted(client):
    body = {"id": "1", "name": "Cotton Kurta", "price": 1299.0, "original_price": 1799.0}

    with mock.patch("requests.get", return_value=_response(200, body)):
        item = client.line_item("1")

    assert item.unit_price == 1299
    assert item.original_unit_price == 1799
